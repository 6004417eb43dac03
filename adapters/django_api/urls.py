"""
Bakery Django adapter URL routing.
"""

from django.urls import path

from adapters.django_api import views


urlpatterns = [
    path("orders", views.orders_create_view),
    path("orders/<str:order_id>", views.order_detail_view),
    path("orders/<str:order_id>/advance", views.order_advance_view),
    path("orders/<str:order_id>/reschedule", views.order_reschedule_view),
    path("orders/<str:order_id>/refund", views.order_refund_view),
    path("orders/<str:order_id>/cancel", views.order_cancel_view),
    path("orders/<str:order_id>/production", views.order_production_view),
    path("timeslots/generate", views.timeslots_generate_view),
    path("timeslots/available", views.timeslots_available_view),
    path("timeslots/store-hours", views.store_hours_view),
    path("timeslots/blackout-dates", views.blackout_dates_add_view),
    path("timeslots/blackout-dates/remove", views.blackout_dates_remove_view),
]
