"""
SMS Template API Client Module

This module builds signed requests to add, modify, delete and query SMS
templates and dispatches them through an HttpTransport.
"""

import os
import json
import logging
import urllib.parse
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from .logging_config import log_template_event
from .signing import calculate_signature, get_current_time, get_random
from .transport import DEFAULT_TIMEOUT, HttpTransport, TemplateRequest, get_default_transport

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://yun.tim.qq.com"

ADD_TEMPLATE_PATH = "/v5/tlssmssvr/add_template"
MOD_TEMPLATE_PATH = "/v5/tlssmssvr/mod_template"
DEL_TEMPLATE_PATH = "/v5/tlssmssvr/del_template"
GET_TEMPLATE_PATH = "/v5/tlssmssvr/get_template"

Callback = Optional[Callable[[Future], Any]]


@dataclass(frozen=True)
class Credential:
    """App id and app key of one remote SMS account"""
    app_id: str
    app_key: str

    def __post_init__(self):
        for name in ('app_id', 'app_key'):
            value = getattr(self, name)
            if value is None or value == "":
                raise ValueError(f"{name} is required")
            object.__setattr__(self, name, str(value))


@dataclass(frozen=True)
class TemplatePage:
    """Page selector for listing every template of an account"""
    offset: int = 0
    max: int = 10

    def to_dict(self) -> Dict[str, int]:
        return {"offset": int(self.offset), "max": int(self.max)}


# ---------------------------------------------------------------------------
# Field normalization
# ---------------------------------------------------------------------------

def _optional_text(value) -> str:
    return "" if value is None else str(value)


def _optional_int(value, default: int = 0) -> int:
    return default if value is None else int(value)


def _id_list(tpl_id):
    if isinstance(tpl_id, (list, tuple)):
        return list(tpl_id)
    return tpl_id


def _page_dict(tpl_page: Union[TemplatePage, Mapping]) -> Dict:
    if isinstance(tpl_page, TemplatePage):
        return tpl_page.to_dict()
    return dict(tpl_page)


# ---------------------------------------------------------------------------
# Request builders
# ---------------------------------------------------------------------------

def _build_request(credential: Credential, path: str, fields: Dict[str, Any],
                   base_url: str = DEFAULT_BASE_URL) -> TemplateRequest:
    """Sign and assemble a request for one of the fixed operation paths"""
    req_url = urllib.parse.urlsplit(base_url.rstrip('/') + path)
    random = get_random()
    now = get_current_time()

    body = {
        "sig": calculate_signature(credential.app_key, random, now),
        "time": now,
    }
    body.update(fields)

    request = TemplateRequest(
        scheme=req_url.scheme or "https",
        host=req_url.netloc,
        path=req_url.path,
        params={"sdkappid": credential.app_id, "random": random},
        body=body,
    )
    logger.debug(f"Built request for {request.path} (sdkappid={credential.app_id}, random={random})")
    return request


def build_add_request(credential: Credential, remark, international, text, title, type,
                      base_url: str = DEFAULT_BASE_URL) -> TemplateRequest:
    """
    Build an add-template request.

    Args:
        credential: Account credential
        remark: Template remark, e.g. why it is needed; None sends ""
        international: 0 for domestic SMS, 1 for international; None sends 0,
            anything else goes through int() and raises ValueError if non-numeric
        text: Template text, placeholders as {1}, {2}, ...
        title: Template name; None sends ""
        type: 0 for a normal SMS, 1 for marketing SMS; goes through int() as well

    Returns:
        TemplateRequest: The signed request
    """
    return _build_request(credential, ADD_TEMPLATE_PATH, {
        "remark": _optional_text(remark),
        "international": _optional_int(international),
        "text": text,
        "title": _optional_text(title),
        "type": int(type),
    }, base_url)


def build_modify_request(credential: Credential, remark, international, text, title, type, tpl_id,
                         base_url: str = DEFAULT_BASE_URL) -> TemplateRequest:
    """Build a modify-template request; fields as for add plus the template id to change"""
    return _build_request(credential, MOD_TEMPLATE_PATH, {
        "remark": _optional_text(remark),
        "international": _optional_int(international),
        "text": text,
        "title": _optional_text(title),
        "type": int(type),
        "tpl_id": _id_list(tpl_id),
    }, base_url)


def build_delete_request(credential: Credential, tpl_id,
                         base_url: str = DEFAULT_BASE_URL) -> TemplateRequest:
    return _build_request(credential, DEL_TEMPLATE_PATH, {"tpl_id": _id_list(tpl_id)}, base_url)


def build_get_request(credential: Credential, tpl_id: Optional[Sequence] = None,
                      tpl_page: Optional[Union[TemplatePage, Mapping]] = None,
                      base_url: str = DEFAULT_BASE_URL) -> TemplateRequest:
    """
    Build a template status query.

    ``tpl_id`` and ``tpl_page`` are exclusive on the wire. When an id list is
    given the page is dropped from the body entirely.
    """
    fields = {}
    if tpl_id is not None:
        fields["tpl_id"] = _id_list(tpl_id)
    elif tpl_page is not None:
        fields["tpl_page"] = _page_dict(tpl_page)
    return _build_request(credential, GET_TEMPLATE_PATH, fields, base_url)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def _log_outcome(operation: str, app_id: str, tpl_id=None):
    def done(future: Future):
        error = future.exception()
        log_template_event(
            'template_request',
            operation,
            app_id=app_id,
            tpl_id=tpl_id,
            success=error is None,
            error=str(error) if error is not None else None,
        )
    return done


def _dispatch(request: TemplateRequest, operation: str, app_id: str,
              transport: Optional[HttpTransport], callback: Callback, tpl_id=None) -> Future:
    transport = transport or get_default_transport()
    future = transport.dispatch(request)
    future.add_done_callback(_log_outcome(operation, app_id, tpl_id))
    if callback is not None:
        future.add_done_callback(callback)
    return future


class _TemplateOperation:
    """Holds the credential and transport shared by one operation's calls"""

    def __init__(self, credential: Credential, transport: Optional[HttpTransport] = None,
                 base_url: str = DEFAULT_BASE_URL):
        self.credential = credential
        self.transport = transport
        self.base_url = base_url


class AddTemplate(_TemplateOperation):
    """Add an SMS (or voice) template"""

    def add(self, remark, international, text, title, type, callback: Callback = None) -> Future:
        request = build_add_request(self.credential, remark, international, text, title, type,
                                    self.base_url)
        return _dispatch(request, 'add', self.credential.app_id, self.transport, callback)


class ModTemplate(_TemplateOperation):
    """Modify an existing template"""

    def modify(self, remark, international, text, title, type, tpl_id,
               callback: Callback = None) -> Future:
        request = build_modify_request(self.credential, remark, international, text, title, type,
                                       tpl_id, self.base_url)
        return _dispatch(request, 'modify', self.credential.app_id, self.transport, callback, tpl_id)


class DelTemplate(_TemplateOperation):
    """Delete templates by id"""

    def delete(self, tpl_id, callback: Callback = None) -> Future:
        request = build_delete_request(self.credential, tpl_id, self.base_url)
        return _dispatch(request, 'delete', self.credential.app_id, self.transport, callback, tpl_id)


class GetTemplate(_TemplateOperation):
    """Query template status, either by id list or page by page"""

    def get(self, tpl_id: Optional[Sequence] = None,
            tpl_page: Optional[Union[TemplatePage, Mapping]] = None,
            callback: Callback = None) -> Future:
        request = build_get_request(self.credential, tpl_id, tpl_page, self.base_url)
        return _dispatch(request, 'get', self.credential.app_id, self.transport, callback, tpl_id)


# ---------------------------------------------------------------------------
# Configuration and client
# ---------------------------------------------------------------------------

def get_default_config_path() -> str:
    """Resolve the config file path from the environment"""
    config_path = os.environ.get("SMS_TEMPLATE_CONFIG")
    if config_path:
        return config_path

    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return os.path.join(xdg_config_home, "sms_template", "config.json")

    home = os.environ.get("HOME")
    if home:
        return os.path.join(home, ".config", "sms_template", "config.json")
    return os.path.join(os.getcwd(), ".config", "sms_template", "config.json")


class TemplateAPIConfig:
    """Configuration for the template API client"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or get_default_config_path()
        self.appid: str = ""
        self.appkey: str = ""
        self.base_url: str = DEFAULT_BASE_URL
        self.timeout: float = DEFAULT_TIMEOUT
        self.verbose: bool = False

        self._load_config()

    def _load_config(self):
        """Load configuration from file"""
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            config_data = json.load(f)

        required_fields = ['appid', 'appkey']
        for field_name in required_fields:
            if field_name not in config_data:
                raise ValueError(f"Missing required config field: {field_name}")
            setattr(self, field_name, str(config_data[field_name]))

        # Optional fields
        self.base_url = config_data.get('base_url', DEFAULT_BASE_URL)
        self.timeout = config_data.get('timeout', DEFAULT_TIMEOUT)
        self.verbose = config_data.get('verbose', False)

    @property
    def credential(self) -> Credential:
        return Credential(self.appid, self.appkey)


class TemplateAPIClient:
    """Client for the SMS template API"""

    def __init__(self, config: TemplateAPIConfig, transport: Optional[HttpTransport] = None):
        self.config = config
        self.credential = config.credential
        self._owns_transport = transport is None
        self.transport = transport or HttpTransport(timeout=config.timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        if self._owns_transport:
            self.transport.close()

    def _operation(self, cls):
        return cls(self.credential, self.transport, self.config.base_url)

    def add_template(self, text, type, title=None, remark=None, international=None,
                     callback: Callback = None) -> Future:
        return self._operation(AddTemplate).add(remark, international, text, title, type, callback)

    def modify_template(self, tpl_id, text, type, title=None, remark=None, international=None,
                        callback: Callback = None) -> Future:
        return self._operation(ModTemplate).modify(remark, international, text, title, type, tpl_id,
                                                   callback)

    def delete_template(self, tpl_id, callback: Callback = None) -> Future:
        return self._operation(DelTemplate).delete(tpl_id, callback)

    def get_template(self, tpl_id: Optional[Sequence] = None,
                     tpl_page: Optional[Union[TemplatePage, Mapping]] = None,
                     callback: Callback = None) -> Future:
        return self._operation(GetTemplate).get(tpl_id, tpl_page, callback)


def parse_endpoint_info(config_path: str) -> TemplateAPIConfig:
    """
    Reads a config to get the app credential and endpoint

    Args:
        config_path: Path to the configuration file

    Returns:
        TemplateAPIConfig: Configuration object
    """
    return TemplateAPIConfig(config_path)


def add_template(api_config: TemplateAPIConfig, text, type, title=None, remark=None,
                 international=None) -> Dict:
    """
    Add a template and wait for the response

    Returns:
        Dict: Response from the service, ``data.id`` holds the new template id
    """
    with TemplateAPIClient(api_config) as client:
        return client.add_template(text, type, title, remark, international).result()


def modify_template(api_config: TemplateAPIConfig, tpl_id, text, type, title=None, remark=None,
                    international=None) -> Dict:
    with TemplateAPIClient(api_config) as client:
        return client.modify_template(tpl_id, text, type, title, remark, international).result()


def delete_template(api_config: TemplateAPIConfig, tpl_id) -> Dict:
    with TemplateAPIClient(api_config) as client:
        return client.delete_template(tpl_id).result()


def get_template(api_config: TemplateAPIConfig, tpl_id: Optional[Sequence] = None,
                 tpl_page: Optional[Union[TemplatePage, Mapping]] = None) -> Dict:
    """
    Query template status and wait for the response

    Args:
        api_config: Template API configuration
        tpl_id: Template ids to look up
        tpl_page: Page selector, used only when no ids are given

    Returns:
        Dict: Response from the service
    """
    with TemplateAPIClient(api_config) as client:
        return client.get_template(tpl_id, tpl_page).result()
