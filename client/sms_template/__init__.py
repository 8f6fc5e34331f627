"""
SMS Template Client

A Python client library for managing SMS templates on the remote SMS service
with signed requests.
"""

from .signing import calculate_signature, get_current_time, get_random
from .transport import (
    HttpTransport,
    TemplateRequest,
    TemplateAPIError,
    TemplateTransportError,
    TemplateHTTPError,
    TemplateResponseError,
)
from .template_api_caller import (
    Credential,
    TemplatePage,
    AddTemplate,
    ModTemplate,
    DelTemplate,
    GetTemplate,
    TemplateAPIConfig,
    TemplateAPIClient,
    build_add_request,
    build_modify_request,
    build_delete_request,
    build_get_request,
    add_template,
    modify_template,
    delete_template,
    get_template,
    parse_endpoint_info,
)

__all__ = [
    'calculate_signature',
    'get_current_time',
    'get_random',
    'HttpTransport',
    'TemplateRequest',
    'TemplateAPIError',
    'TemplateTransportError',
    'TemplateHTTPError',
    'TemplateResponseError',
    'Credential',
    'TemplatePage',
    'AddTemplate',
    'ModTemplate',
    'DelTemplate',
    'GetTemplate',
    'TemplateAPIConfig',
    'TemplateAPIClient',
    'build_add_request',
    'build_modify_request',
    'build_delete_request',
    'build_get_request',
    'add_template',
    'modify_template',
    'delete_template',
    'get_template',
    'parse_endpoint_info',
]

__version__ = "0.1.0"
