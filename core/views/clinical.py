from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.serializers.clinical import AssessmentRequestSerializer
from core.services.clinical import assess

from ..permissions import IsStaffRole


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStaffRole])
def assess_measurement(request):
    """Classify one measurement record without storing it."""
    s = AssessmentRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    return Response({'ok': True, 'ageMonths': data['age_months'], 'data': assess(**data)})
