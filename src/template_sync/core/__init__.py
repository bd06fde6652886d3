"""Remote store access shared by the reconciliation engine."""

from .client import RemoteStore, TemplateClient, decode_template_response
from .models import TemplateBundle

__all__ = [
    "RemoteStore",
    "TemplateBundle",
    "TemplateClient",
    "decode_template_response",
]
