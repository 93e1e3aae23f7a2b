from django.urls import path
from . import views

app_name = 'tontines'

urlpatterns = [
    # Tontines
    path('', views.tontine_list, name='tontine_list'),
    path('join/', views.join_tontine, name='join_tontine'),
    path('<uuid:tontine_id>/', views.tontine_detail, name='tontine_detail'),
    path('<uuid:tontine_id>/edit/', views.tontine_edit, name='tontine_edit'),
    path('<uuid:tontine_id>/delete/', views.tontine_delete, name='tontine_delete'),
    path('<uuid:tontine_id>/start/', views.tontine_start, name='tontine_start'),
    path('<uuid:tontine_id>/suspend/', views.tontine_suspend, name='tontine_suspend'),
    path('<uuid:tontine_id>/resume/', views.tontine_resume, name='tontine_resume'),
    path('<uuid:tontine_id>/advance/', views.tontine_advance, name='tontine_advance'),
    path('<uuid:tontine_id>/schedule/', views.tontine_schedule, name='tontine_schedule'),
    path('<uuid:tontine_id>/overview/', views.cycle_overview, name='cycle_overview'),

    # Participants
    path('<uuid:tontine_id>/participants/add/', views.add_participant, name='add_participant'),
    path('<uuid:tontine_id>/participants/reorder/', views.reorder_participants, name='reorder_participants'),
    path('<uuid:tontine_id>/participants/<uuid:participant_id>/remove/', views.remove_participant, name='remove_participant'),

    # Payments
    path('<uuid:tontine_id>/participants/<uuid:participant_id>/payments/', views.payment_history, name='payment_history'),
    path('<uuid:tontine_id>/participants/<uuid:participant_id>/mark-paid/', views.mark_paid, name='mark_paid'),
    path('<uuid:tontine_id>/participants/<uuid:participant_id>/validate/', views.validate_payment, name='validate_payment'),
    path('<uuid:tontine_id>/participants/<uuid:participant_id>/reject/', views.reject_payment, name='reject_payment'),
]
