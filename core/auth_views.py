"""
Authentication views.

Staff sign in with username and password and receive both a DRF token
(``Authorization: Token ...``) and a SimpleJWT pair.  By keeping these
views out of ``core.authentication`` we avoid circular imports when
Django REST framework initialises authentication classes.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from core.serializers.auth import LoginSerializer, StaffProfileSerializer
from core.services.audit import log_action

from .permissions import STAFF_ROLES, LoginRateThrottle


# ---------------------------------------------------------------------
# Username/password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']

    user = authenticate(request, username=username, password=s.validated_data['password'])
    if not user or user.role not in STAFF_ROLES:
        log_action(user=None, action='login', object_type='user', status='fail',
                   detail={'username': username}, request=request)
        return Response({'ok': False, 'error': {'code': 'invalid_credentials', 'message': 'Nama pengguna atau kata sandi salah'}},
                        status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id, request=request)

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': StaffProfileSerializer(user).data,
    })


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from refresh token."""
    resp = TokenRefreshView.as_view()(request._request)
    if resp.status_code != 200:
        return Response({'ok': False, 'error': {'code': 'invalid_token', 'message': 'Token tidak valid atau kedaluwarsa'}},
                        status=401)
    data = dict(resp.data)
    data['jwt_access'] = data.pop('access')
    if 'refresh' in data:
        data['jwt_refresh'] = data.pop('refresh')
    return Response({'ok': True, **data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    refresh = request.data.get('refresh')
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError:
            return Response({'ok': False, 'error': {'code': 'invalid_token', 'message': 'Token tidak valid'}}, status=400)
        count = 1
    else:
        count = 0
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count}, request=request)
    return Response({'ok': True, 'blacklisted': count})
