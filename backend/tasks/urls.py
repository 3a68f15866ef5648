from django.urls import path
from .views import task_list_create, task_detail, task_instances, create_repeated_tasks

urlpatterns = [
    path('tasks/', task_list_create, name='task-list-create'),
    path('tasks/<uuid:pk>/', task_detail, name='task-detail'),
    path('tasks/<uuid:pk>/instances/', task_instances, name='task-instances'),

    # Scheduler endpoint
    path('cron/create-repeated-tasks/', create_repeated_tasks, name='cron-create-repeated-tasks'),
]
