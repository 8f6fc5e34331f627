"""
Template Blueprint for the SMS Template Sandbox

This blueprint answers the four template management endpoints locally, in
the shape of the remote service, so the client can be exercised without a
real account. Templates live in memory for the life of the process.

To register this blueprint in your Flask app:
    from blueprints.templates import templates_bp
    app.register_blueprint(templates_bp)

Endpoints:
    POST /v5/tlssmssvr/add_template
    POST /v5/tlssmssvr/mod_template
    POST /v5/tlssmssvr/del_template
    POST /v5/tlssmssvr/get_template

Every request carries ?sdkappid=...&random=... and a JSON body with sig and
time; the signature is checked against the app registry first.
"""

import os
import threading
import logging
from datetime import datetime
from flask import Blueprint, request, jsonify
from sms_template.logging_config import log_security_event, log_template_event
from src import signature_check

# Set up logger for this module
logger = logging.getLogger(__name__)

templates_bp = Blueprint('templates', __name__, url_prefix='/v5/tlssmssvr')

RESULT_OK = 0
RESULT_SIG_CHECK_FAILED = 1001
RESULT_BAD_REQUEST = 1004
RESULT_TEMPLATE_NOT_FOUND = 1013

STATUS_APPROVED = 0
STATUS_PENDING = 1

FIRST_TEMPLATE_ID = 100001

_templates = {}
_next_id = FIRST_TEMPLATE_ID
_store_lock = threading.Lock()

_apps_lock = threading.Lock()
_apps_cache = {'key': None, 'apps': {}}


def reset_templates():
    """Forget every template (used between tests)"""
    global _next_id
    with _store_lock:
        _templates.clear()
        _next_id = FIRST_TEMPLATE_ID


def get_apps():
    """Get the app registry, reloading it when the file changes"""
    path = signature_check.APPS_PATH
    try:
        cache_key = (path, os.path.getmtime(path))
    except OSError:
        logger.error(f"App registry not found: {path}")
        return {}

    with _apps_lock:
        if _apps_cache['key'] != cache_key:
            _apps_cache['apps'] = signature_check.load_apps()
            _apps_cache['key'] = cache_key
            logger.info(f"Loaded {len(_apps_cache['apps'])} app(s) from {path}")
        return _apps_cache['apps']


def error_response(result, errmsg):
    return jsonify({"result": result, "errmsg": errmsg})


def verify_auth(data):
    """Check sdkappid, time, nonce and sig; returns (app_id, error_response)"""
    client_ip = request.remote_addr
    app_id = request.args.get('sdkappid')
    random = request.args.get('random')

    if not app_id or random is None:
        logger.warning(f"Template request missing sdkappid/random from {client_ip}")
        return None, error_response(RESULT_BAD_REQUEST, "sdkappid and random are required")
    if 'sig' not in data or 'time' not in data:
        logger.warning(f"Template request missing sig/time from {client_ip}")
        return None, error_response(RESULT_BAD_REQUEST, "sig and time are required")

    app_key = get_apps().get(app_id)
    if app_key is None:
        log_security_event('unknown_app', 'sdkappid not registered', client_ip, app_id)
        return None, error_response(RESULT_SIG_CHECK_FAILED, "unknown sdkappid")

    if not signature_check.is_fresh(data['time']):
        log_security_event('stale_request', f"time={data['time']}", client_ip, app_id)
        return None, error_response(RESULT_SIG_CHECK_FAILED, "request time outside allowed window")

    if not signature_check.verify_signature(app_key, random, data['time'], data['sig']):
        log_security_event('sig_mismatch', 'invalid signature', client_ip, app_id)
        return None, error_response(RESULT_SIG_CHECK_FAILED, "sig check failed")

    if not signature_check.register_nonce(app_id, random, data['time']):
        log_security_event('nonce_reuse', f"random={random}", client_ip, app_id)
        return None, error_response(RESULT_SIG_CHECK_FAILED, "random already used")

    return app_id, None


def template_fields(data):
    """Validate add/mod fields; returns (fields, errmsg)"""
    if 'text' not in data or 'type' not in data:
        return None, "text and type are required"
    if not isinstance(data['type'], int) or data['type'] not in (0, 1):
        return None, "type must be 0 or 1"
    international = data.get('international', 0)
    if international not in (0, 1):
        return None, "international must be 0 or 1"
    return {
        "text": str(data['text']),
        "type": data['type'],
        "international": international,
        "title": data.get('title', ""),
        "remark": data.get('remark', ""),
    }, None


def parse_ids(value):
    """Coerce template ids (ints or numeric strings) to ints; None if any is malformed"""
    try:
        return [int(tpl_id) for tpl_id in value]
    except (TypeError, ValueError):
        return None


def public_view(template):
    return {
        "id": template["id"],
        "international": template["international"],
        "status": template["status"],
        "text": template["text"],
        "type": template["type"],
    }


def handle(operation, handler):
    """Shared request plumbing: JSON parsing, auth, error mapping"""
    client_ip = request.remote_addr
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            logger.warning(f"{operation} request with no JSON data from {client_ip}")
            return error_response(RESULT_BAD_REQUEST, "JSON body required")

        app_id, auth_error = verify_auth(data)
        if auth_error is not None:
            return auth_error

        return handler(app_id, data)
    except Exception as e:
        logger.error(f"Unexpected error handling {operation} from {client_ip}: {str(e)}", exc_info=True)
        return jsonify({"result": 500, "errmsg": "Internal server error"}), 500


def _add(app_id, data):
    global _next_id
    fields, errmsg = template_fields(data)
    if errmsg:
        return error_response(RESULT_BAD_REQUEST, errmsg)

    with _store_lock:
        template = dict(fields, id=_next_id, app_id=app_id, status=STATUS_PENDING,
                        reply="", apply_time=datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
                        reply_time="")
        _templates[_next_id] = template
        _next_id += 1

    log_template_event('template_added', 'add', app_id=app_id, tpl_id=template['id'])
    return jsonify({"result": RESULT_OK, "errmsg": "", "data": public_view(template)})


def _modify(app_id, data):
    fields, errmsg = template_fields(data)
    if errmsg:
        return error_response(RESULT_BAD_REQUEST, errmsg)

    try:
        tpl_id = int(data.get('tpl_id'))
    except (TypeError, ValueError):
        return error_response(RESULT_BAD_REQUEST, "tpl_id must be an integer")

    with _store_lock:
        template = _templates.get(tpl_id)
        if template is None or template['app_id'] != app_id:
            return error_response(RESULT_TEMPLATE_NOT_FOUND, f"template {tpl_id} not found")
        template.update(fields, status=STATUS_PENDING, reply="", reply_time="")

    log_template_event('template_modified', 'modify', app_id=app_id, tpl_id=tpl_id)
    return jsonify({"result": RESULT_OK, "errmsg": "", "data": public_view(template)})


def _delete(app_id, data):
    tpl_ids = data.get('tpl_id')
    if not isinstance(tpl_ids, list) or not tpl_ids:
        return error_response(RESULT_BAD_REQUEST, "tpl_id must be a non-empty array")
    tpl_ids = parse_ids(tpl_ids)
    if tpl_ids is None:
        return error_response(RESULT_BAD_REQUEST, "tpl_id must hold integers")

    with _store_lock:
        missing = [tpl_id for tpl_id in tpl_ids
                   if tpl_id not in _templates or _templates[tpl_id]['app_id'] != app_id]
        if missing:
            return error_response(RESULT_TEMPLATE_NOT_FOUND, f"template(s) not found: {missing}")
        for tpl_id in tpl_ids:
            del _templates[tpl_id]

    log_template_event('template_deleted', 'delete', app_id=app_id, tpl_id=tpl_ids)
    return jsonify({"result": RESULT_OK, "errmsg": ""})


def _get(app_id, data):
    with _store_lock:
        owned = [t for t in sorted(_templates.values(), key=lambda t: t['id'])
                 if t['app_id'] == app_id]

    if 'tpl_id' in data:
        tpl_ids = data['tpl_id']
        if not isinstance(tpl_ids, list):
            return error_response(RESULT_BAD_REQUEST, "tpl_id must be an array")
        tpl_ids = parse_ids(tpl_ids)
        if tpl_ids is None:
            return error_response(RESULT_BAD_REQUEST, "tpl_id must hold integers")
        selected = [t for t in owned if t['id'] in tpl_ids]
    elif 'tpl_page' in data:
        page = data['tpl_page']
        if not isinstance(page, dict) or not all(isinstance(page.get(k), int) for k in ('offset', 'max')):
            return error_response(RESULT_BAD_REQUEST, "tpl_page needs integer offset and max")
        selected = owned[page['offset']:page['offset'] + page['max']]
    else:
        return error_response(RESULT_BAD_REQUEST, "one of tpl_id or tpl_page is required")

    keys = ("id", "international", "reply", "status", "text", "type", "apply_time", "reply_time")
    return jsonify({
        "result": RESULT_OK,
        "errmsg": "",
        "total": len(owned),
        "count": len(selected),
        "data": [{k: t[k] for k in keys} for t in selected],
    })


@templates_bp.route("/add_template", methods=["POST"])
def add_template():
    """Add a template; it starts out pending review"""
    return handle('add', _add)


@templates_bp.route("/mod_template", methods=["POST"])
def mod_template():
    return handle('modify', _modify)


@templates_bp.route("/del_template", methods=["POST"])
def del_template():
    return handle('delete', _delete)


@templates_bp.route("/get_template", methods=["POST"])
def get_template():
    """Query by id list, or page through all of the app's templates"""
    return handle('get', _get)
