from django.urls import path
from . import views

app_name = 'leadstages'

urlpatterns = [
    # Stages
    path('stages/', views.stages_collection, name='stages'),
    path('stages/adjacent/', views.stage_adjacent, name='stage_adjacent'),
    path('stages/reorder/', views.stage_reorder, name='stage_reorder'),
    path('stages/<uuid:stage_id>/', views.stage_detail, name='stage_detail'),

    # Kanban
    path('kanban/board/', views.kanban_board, name='kanban_board'),
    path('kanban/summary/', views.kanban_summary, name='kanban_summary'),
    path('kanban/leads/<uuid:lead_id>/move/', views.lead_move, name='lead_move'),

    # Leads
    path('leads/<uuid:lead_id>/status/', views.lead_status, name='lead_status'),
]
