from django.http import HttpResponse


def api_playground(request):
    html = '''<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <title>Revenue Engine Playground</title>
    <style>body{font-family:system-ui,Arial;margin:20px} textarea{width:100%;height:90px} input{width:60%}</style>
  </head>
  <body>
    <h2>Creator Revenue Engine: Playground</h2>
    <p>Try the quote and reporting endpoints. No external CDN is used.</p>

    <h3>POST /api/v1/checkout/quote</h3>
    <textarea id="quote_body">{"amount":"25.00","currency":"USD","country_code":"US","purpose":"personal"}</textarea>
    <button onclick="post('/api/v1/checkout/quote')">Send Quote</button>

    <h3>GET endpoints</h3>
    <p><input id="get_path" value="/api/v1/pricing/minimum?currency=NGN&amp;country_code=NG" />
    <button onclick="get()">Send</button></p>
    <p>
      Shortcuts:
      <a href="#" onclick="pick('/api/v1/admin/revenue/overview')">overview</a> |
      <a href="#" onclick="pick('/api/v1/admin/revenue/by-currency?period=month')">by-currency</a> |
      <a href="#" onclick="pick('/api/v1/admin/revenue/by-provider?period=all')">by-provider</a> |
      <a href="#" onclick="pick('/api/v1/admin/revenue/daily?days=30')">daily</a> |
      <a href="#" onclick="pick('/api/v1/admin/revenue/monthly?months=12')">monthly</a> |
      <a href="#" onclick="pick('/api/v1/admin/revenue/top-creators?limit=10')">top-creators</a> |
      <a href="#" onclick="pick('/api/v1/admin/revenue/refunds')">refunds</a> |
      <a href="#" onclick="pick('/api/v1/admin/revenue/reporting')">reporting</a>
    </p>

    <h3>Response</h3>
    <pre id="out"></pre>

    <script>
    function pick(path){ document.getElementById('get_path').value = path; get(); return false }
    async function show(resp){
      const text = await resp.text();
      document.getElementById('out').textContent = 'Status: '+resp.status+'\\n'+text;
    }
    async function post(path){
      const out = document.getElementById('out');
      out.textContent = '...loading';
      let body = document.getElementById('quote_body').value;
      try{ body = JSON.parse(body); }catch(e){ out.textContent = 'Invalid JSON body'; return }
      try{
        await show(await fetch(path, {method:'POST', headers:{'Content-Type':'application/json'}, body: JSON.stringify(body)}));
      }catch(e){ out.textContent = 'Fetch error: '+e }
    }
    async function get(){
      const out = document.getElementById('out');
      out.textContent = '...loading';
      try{ await show(await fetch(document.getElementById('get_path').value)); }
      catch(e){ out.textContent = 'Fetch error: '+e }
    }
    </script>
  </body>
</html>
'''
    return HttpResponse(html)
