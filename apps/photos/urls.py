from django.urls import path
from .views import generate_upload_params, confirm_upload

urlpatterns = [
    path("upload-params/", generate_upload_params, name="generate-upload-params"),
    path("confirm-upload/", confirm_upload, name="confirm-upload"),
]
