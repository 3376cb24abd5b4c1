import logging

from django.contrib.auth import authenticate
from django.db import IntegrityError
from django.db.models import Q
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from apps.core.permissions import IsAdminOrManager
from .identity import ROLE_ADMIN, ROLE_MANAGER
from .models import User
from .serializers import SignupSerializer, UserSerializer

logger = logging.getLogger(__name__)


def issue_tokens(user) -> dict:
    """
    Issue a refresh/access pair carrying the caller identity claims

    The work order service scopes records by role and, for technicians, by name
    """
    refresh = RefreshToken.for_user(user)
    refresh["email"] = user.email
    refresh["role"] = user.role
    refresh["first_name"] = user.first_name
    refresh["last_name"] = user.last_name

    return {"access": str(refresh.access_token), "refresh": str(refresh)}


@api_view(["POST"])
@permission_classes([AllowAny])
def signup_view(request):
    """
    Signup endpoint

    POST /api/v1/auth/signup/
    {
        "email": "jane.doe@example.com",
        "password": "securepassword123",
        "first_name": "Jane",
        "last_name": "Doe",
        "role": "technician"
    }

    Admin and manager accounts can only be created by an authenticated admin.
    """
    serializer = SignupSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    role = serializer.validated_data.get("role")
    if role in (ROLE_ADMIN, ROLE_MANAGER):
        requester = request.user
        if not requester.is_authenticated or getattr(requester, "role", None) != ROLE_ADMIN:
            return Response(
                {"success": False, "message": "Only administrators can create admin or manager accounts"},
                status=status.HTTP_403_FORBIDDEN,
            )

    try:
        user = serializer.save()
    except IntegrityError:
        return Response(
            {"success": False, "message": "An account with this email already exists."},
            status=status.HTTP_400_BAD_REQUEST,
        )

    logger.info(f"Registered user {user.email} with role {user.role}")

    return Response(
        {"success": True, "data": {"user": UserSerializer(user).data, **issue_tokens(user)}},
        status=status.HTTP_201_CREATED,
    )


@api_view(["POST"])
@permission_classes([AllowAny])
def login_view(request):
    """
    Login endpoint for JWT authentication
    returns: JWT refresh and access tokens
    """
    email = (request.data.get("email") or "").strip().lower()
    password = request.data.get("password")

    if not email or not password:
        return Response({"success": False, "message": "Email and password are required"}, status=status.HTTP_400_BAD_REQUEST)

    user = authenticate(request, email=email, password=password)

    if not user:
        logger.warning(f"Failed login attempt for {email}")
        return Response({"success": False, "message": "Invalid email or password"}, status=status.HTTP_401_UNAUTHORIZED)

    logger.info(f"User logged in: {user.email}")

    return Response({"success": True, "data": {"user": UserSerializer(user).data, **issue_tokens(user)}})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def logout_view(request):
    refresh_token = request.data.get("refresh") or request.COOKIES.get("refresh_token")

    if refresh_token is None:
        return Response({"success": False, "message": "No refresh token provided."}, status=status.HTTP_400_BAD_REQUEST)

    try:
        token = RefreshToken(refresh_token)
        token.blacklist()
    except TokenError as e:
        return Response({"success": False, "message": str(e)}, status=status.HTTP_400_BAD_REQUEST)

    response = Response(status=status.HTTP_204_NO_CONTENT)
    response.delete_cookie("refresh_token")

    return response


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({"success": True, "data": UserSerializer(request.user).data})


class UserListView(generics.ListAPIView):
    """
    Paginated user directory for admins and managers
    Supports ?role= and ?search= (matches name or email)
    """

    serializer_class = UserSerializer
    permission_classes = [IsAdminOrManager]

    def get_queryset(self):
        queryset = User.objects.all()

        role = self.request.query_params.get("role")
        if role:
            queryset = queryset.filter(role=role)

        search = (self.request.query_params.get("search") or "").strip()
        if search:
            queryset = queryset.filter(Q(first_name__icontains=search) | Q(last_name__icontains=search) | Q(email__icontains=search))

        return queryset
