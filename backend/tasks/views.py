import logging
from django.conf import settings
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from .cron_auth import verify_cron_auth
from .models import Task
from .recurring import RecurringTaskGenerator, TemplateFetchError
from .serializers import TaskSerializer

logger = logging.getLogger('backend.tasks')


def _parse_bool(value):
    return str(value).lower() in ('1', 'true', 'yes')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def task_list_create(request):
    """List tasks or create a new task"""
    if request.method == 'GET':
        tasks = Task.objects.select_related('parent_task').prefetch_related('assignments__staff')

        task_status = request.query_params.get('status')
        if task_status:
            tasks = tasks.filter(status=task_status)
        priority = request.query_params.get('priority')
        if priority:
            tasks = tasks.filter(priority=priority)
        is_repeated = request.query_params.get('is_repeated')
        if is_repeated is not None:
            tasks = tasks.filter(is_repeated=_parse_bool(is_repeated))
        parent_task = request.query_params.get('parent_task')
        if parent_task:
            tasks = tasks.filter(parent_task_id=parent_task)

        serializer = TaskSerializer(tasks, many=True)
        return Response(serializer.data)

    logger.info(f"User {request.user.username} creating task: {request.data.get('title')}")
    serializer = TaskSerializer(data=request.data)
    if serializer.is_valid():
        task = serializer.save()
        logger.info(f"Task {task.task_no} created by {request.user.username}")
        return Response(TaskSerializer(task).data, status=status.HTTP_201_CREATED)
    logger.warning(f"Task validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def task_detail(request, pk):
    """Retrieve, update or delete a task"""
    task = get_object_or_404(Task, pk=pk)

    if request.method == 'GET':
        return Response(TaskSerializer(task).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = TaskSerializer(task, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            task = serializer.save()
            logger.info(f"Task {task.task_no} updated by {request.user.username}")
            return Response(TaskSerializer(task).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if not request.user.is_admin_role:
            logger.warning(f"User {request.user.username} attempted to delete task {task.task_no} without admin role")
            return Response({'error': 'Only administrators can delete tasks'}, status=status.HTTP_403_FORBIDDEN)
        logger.info(f"Task {task.task_no} deleted by {request.user.username}")
        task.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def task_instances(request, pk):
    """Instances generated from a repeated task"""
    template = get_object_or_404(Task, pk=pk)
    instances = template.instances.prefetch_related('assignments__staff').order_by('-generation_date', '-created_at')
    return Response(TaskSerializer(instances, many=True).data)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def create_repeated_tasks(request):
    """
    Cron endpoint: create today's instances of all repeated tasks.

    Authorized by the scheduler signature header, a Bearer token or a
    ``secret`` query parameter (see cron_auth). Per-task failures only show up
    in the skipped count; the response is an error only when authorization
    fails or the templates can't be loaded.
    """
    if not verify_cron_auth(request, settings.CRON_SECRET, settings.CRON_TRUSTED_HEADER):
        logger.warning(f"Unauthorized cron request from {request.META.get('REMOTE_ADDR')}")
        return Response({'error': 'Unauthorized'}, status=status.HTTP_401_UNAUTHORIZED)

    try:
        report = RecurringTaskGenerator().run()
    except TemplateFetchError:
        return Response({'error': 'Failed to process repeated tasks'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception as e:
        logger.error(f"Error in create-repeated-tasks cron: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to process repeated tasks'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response(report.to_dict())
