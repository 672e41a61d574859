"""
backend/contracts/urls.py

"""

# ----------------------------
# Django imports
# ----------------------------
from django.urls import path

# ----------------------------
# Local view imports
# ----------------------------
from .views import ContractAttachmentView, PublicSignViewSet

# App namespace for reverse() lookups
app_name = 'contracts'

# ----------------------------
# Public signing endpoints (no auth)
# ----------------------------
public_urlpatterns = [
    path('sign/<str:token>/', PublicSignViewSet.as_view({
        'get': 'get_invite',
        'post': 'submit_signature'
    }), name='public-sign'),
    # GET returns the role and signer hints, plus the redacted contract once
    # the invite is not (or no longer) gated by a one-time code.
    # POST records the signature for the invite's role.

    path('sign/<str:token>/otp/', PublicSignViewSet.as_view({
        'post': 'verify_otp'
    }), name='public-sign-otp'),
    # Unlocks a gated invite with its login id and one-time code.
]

# ----------------------------
# Attachment retrieval
# ----------------------------
urlpatterns = [
    path('attachments/<str:contract_id>/<str:attachment_id>/',
         ContractAttachmentView.as_view(),
         name='contract-attachment'),
    # Serves inline data: attachments, redirects to external http(s) ones.
]
