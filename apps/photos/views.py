import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.authentication.identity import Caller
from apps.workorders.exceptions import WorkOrderError
from apps.workorders.serializers import OrderSerializer
from apps.workorders.services import OrderService
from .serializers import ImageConfirmUploadSerializer, ImageUploadRequestSerializer
from .services.cloudinary_service import CloudinaryService, ImageStorageError

logger = logging.getLogger(__name__)

cloudinary_service = CloudinaryService()


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def generate_upload_params(request):
    """
    Generate Cloudinary signed upload parameters for a work order image

    POST /api/v1/photos/upload-params/
    {
        "order_id": "WO-2024-01-0001"
    }
    """
    serializer = ImageUploadRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    # raises NotFound when the caller cannot see the order
    order = OrderService.get_order(Caller.from_user(request.user), serializer.validated_data["order_id"])

    try:
        upload_data = cloudinary_service.generate_upload_params(order_id=str(order.internal_id))
    except ImageStorageError as e:
        return Response({"success": False, "message": str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({"success": True, "data": upload_data})


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def confirm_upload(request):
    """
    Confirm that an image was uploaded to Cloudinary and attach it to the work order

    POST /api/v1/photos/confirm-upload/
    {
        "order_id": "WO-2024-01-0001",
        "public_id": "confined-space-images/<order uuid>/image_123",
        "file_size": 123456
    }

    `public_id` must sit under the prefix issued by upload-params for that order.
    The stored URL is the one Cloudinary reports for the verified asset.
    """
    serializer = ImageConfirmUploadSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    caller = Caller.from_user(request.user)
    order_id = serializer.validated_data["order_id"]
    public_id = serializer.validated_data["public_id"]

    # verify the order exists and is visible before touching storage
    order = OrderService.get_order(caller, order_id)

    prefix = cloudinary_service.upload_prefix(str(order.internal_id))
    if not public_id.startswith(prefix) or ".." in public_id:
        logger.warning(f"Rejected confirm for {public_id} on order {order.work_order_id} by {caller.id}")
        return Response(
            {"success": False, "message": "Upload does not belong to this work order"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    resource = cloudinary_service.verify_upload(public_id)
    if not resource:
        return Response(
            {"success": False, "message": "Upload not found in Cloudinary"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    url = resource.get("secure_url") or resource.get("url") or cloudinary_service.get_image_url(public_id)

    try:
        order = OrderService.add_images(caller, order.internal_id, [url])
    except WorkOrderError:
        logger.warning(f"Attaching image {public_id} to order {order.work_order_id} failed, removing uploaded asset")
        cloudinary_service.delete_image(public_id)
        raise

    return Response(
        {
            "success": True,
            "message": "Image uploaded successfully",
            "data": {
                "url": url,
                "thumbnail_url": cloudinary_service.get_thumbnail_url(public_id),
                "order": OrderSerializer(order).data,
            },
        },
        status=status.HTTP_201_CREATED,
    )
