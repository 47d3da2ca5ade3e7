"""Services package - Form library and editing sessions."""

from .form_service import FormService, FormSession

__all__ = ['FormService', 'FormSession']
