import logging
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from .models import Staff
from .serializers import StaffSerializer

logger = logging.getLogger('backend.staff')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def staff_list(request):
    """List active staff members (optionally filtered by department or branch)"""
    staff = Staff.objects.filter(is_active=True)

    department = request.query_params.get('department')
    if department:
        staff = staff.filter(department=department)
    branch = request.query_params.get('branch')
    if branch:
        staff = staff.filter(branch=branch)

    serializer = StaffSerializer(staff, many=True)
    logger.debug(f"Returning {len(serializer.data)} staff members to {request.user.username}")
    return Response(serializer.data)
