from django.urls import path
from .views import (
    MinimumView,
    QuoteView,
    RefundsView,
    ReportingRollupView,
    RevenueByCurrencyView,
    RevenueByProviderView,
    RevenueDailyView,
    RevenueMonthlyView,
    RevenueOverviewView,
    TopCreatorsView,
)

urlpatterns = [
    path("checkout/quote", QuoteView.as_view(), name="quote"),
    path("pricing/minimum", MinimumView.as_view(), name="pricing-minimum"),
    path("admin/revenue/overview", RevenueOverviewView.as_view(), name="revenue-overview"),
    path("admin/revenue/by-currency", RevenueByCurrencyView.as_view(), name="revenue-by-currency"),
    path("admin/revenue/by-provider", RevenueByProviderView.as_view(), name="revenue-by-provider"),
    path("admin/revenue/daily", RevenueDailyView.as_view(), name="revenue-daily"),
    path("admin/revenue/monthly", RevenueMonthlyView.as_view(), name="revenue-monthly"),
    path("admin/revenue/top-creators", TopCreatorsView.as_view(), name="revenue-top-creators"),
    path("admin/revenue/refunds", RefundsView.as_view(), name="revenue-refunds"),
    path("admin/revenue/reporting", ReportingRollupView.as_view(), name="revenue-reporting"),
]
