from flask import Blueprint, request, jsonify, send_file, current_app
from io import BytesIO
import json
import zipfile
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .config import MAX_PLAYS_PER_EXPORT, MAX_BATCH_SIZE
from .sharing import ShareOptions
from .export.types import PlayRecord, ReportConfig, FilterSpec, RunResult
from .export.filters import filter_records
from .export.analytics import summarize
from .export.jobs import ExportJob, calculate_total_steps, plan_stages, run_batch
from .export.presets import TEMPLATE_PRESETS, build_config
from .export.formatters import utc_now

# Create blueprint
bp = Blueprint('main', __name__)


class RequestError(Exception):
    """Invalid export request"""

    def __init__(self, errors: List[str]):
        super().__init__('; '.join(errors))
        self.errors = errors


def _validation_messages(error: ValidationError) -> List[str]:
    messages = []
    for err in error.errors():
        location = '.'.join(str(part) for part in err.get('loc', ()))
        messages.append(f"{location}: {err.get('msg')}" if location else err.get('msg'))
    return messages


def _json_payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise RequestError(['Request body must be a JSON object'])
    return payload


def _parse_config(payload: Dict[str, Any]) -> ReportConfig:
    """Configuration from a preset id plus overrides, or from a plain config object"""
    overrides = payload.get('config') or {}
    if not isinstance(overrides, dict):
        raise RequestError(['config must be an object'])
    try:
        if payload.get('preset'):
            return build_config(payload['preset'], **overrides)
        return ReportConfig.model_validate(overrides)
    except KeyError as e:
        raise RequestError([str(e.args[0]) if e.args else 'Unknown preset'])
    except ValidationError as e:
        raise RequestError(_validation_messages(e))


def _parse_records(raw_records: Any) -> List[PlayRecord]:
    if not isinstance(raw_records, list):
        raise RequestError(['records must be a list'])
    if len(raw_records) > MAX_PLAYS_PER_EXPORT:
        raise RequestError([f'Too many plays. Maximum is {MAX_PLAYS_PER_EXPORT} per export.'])
    try:
        return [PlayRecord.model_validate(record) for record in raw_records]
    except ValidationError as e:
        raise RequestError(_validation_messages(e))


def _parse_share(payload: Dict[str, Any]) -> Optional[ShareOptions]:
    raw_share = payload.get('share')
    if not raw_share:
        return None
    if raw_share is True:
        return ShareOptions()
    try:
        return ShareOptions.model_validate(raw_share)
    except ValidationError as e:
        raise RequestError(_validation_messages(e))


def _sharing_client():
    return current_app.extensions.get('sharing_client')


def _result_summary(result: RunResult) -> Dict[str, Any]:
    """JSON-safe description of a run result, without the file bytes"""
    return result.model_dump(mode='json', exclude={'content'})


@bp.errorhandler(RequestError)
def handle_request_error(e):
    return jsonify({'success': False, 'errors': e.errors}), 400


@bp.route('/api/templates')
def list_templates():
    """Built-in export presets"""
    return jsonify({'success': True, 'templates': TEMPLATE_PRESETS})


@bp.route('/api/exports/plan', methods=['POST'])
def plan_export():
    """Stages and step count an export would run, without producing anything"""
    payload = _json_payload()
    config = _parse_config(payload)
    records = _parse_records(payload.get('records', []))

    selected, _ = ExportJob(config).select(records)
    stages = plan_stages(config, selected)
    return jsonify({
        'success': True,
        'playsCount': len(selected),
        'totalSteps': calculate_total_steps(config, selected),
        'stages': [{'name': stage.name, 'message': stage.message} for stage in stages],
    })


@bp.route('/api/analytics', methods=['POST'])
def analytics():
    """Analytics summary for the (optionally filtered) records"""
    payload = _json_payload()
    records = _parse_records(payload.get('records', []))
    try:
        spec = FilterSpec.model_validate(payload['filters']) if payload.get('filters') else None
    except ValidationError as e:
        raise RequestError(_validation_messages(e))

    summary = summarize(filter_records(records, spec))
    return jsonify({'success': True, 'analytics': summary.to_dict()})


@bp.route('/api/exports', methods=['POST'])
def create_export():
    """Run one export and return the produced file"""
    payload = _json_payload()
    config = _parse_config(payload)
    records = _parse_records(payload.get('records', []))
    captures = payload.get('captures') or []
    share = _parse_share(payload)

    current_app.logger.info(f"Export request: {config.format}/{config.template}, {len(records)} plays")
    job = ExportJob(config, sharing_client=_sharing_client())
    result = job.run(records, captures, share=share)

    if not result.success:
        current_app.logger.error(f"Export failed: {result.error}")
        return jsonify({'success': False, 'errors': [result.error]}), 500

    response = send_file(
        BytesIO(result.content),
        as_attachment=True,
        download_name=result.fileName,
        mimetype=result.mimeType
    )
    if result.shareUrl:
        response.headers['X-Share-Url'] = result.shareUrl
    if result.shareError:
        response.headers['X-Share-Error'] = result.shareError
    return response


@bp.route('/api/exports/batch', methods=['POST'])
def create_batch_export():
    """Run several exports and return them as one ZIP archive with a manifest"""
    payload = _json_payload()
    config = _parse_config(payload)
    items = payload.get('items')
    if not isinstance(items, list) or not items:
        raise RequestError(['items must be a non-empty list'])
    if len(items) > MAX_BATCH_SIZE:
        raise RequestError([f'Too many exports in batch. Maximum is {MAX_BATCH_SIZE}.'])

    record_sets, overrides, captures = [], [], []
    for item in items:
        if not isinstance(item, dict):
            raise RequestError(['Each batch item must be an object'])
        record_sets.append(_parse_records(item.get('records', [])))
        overrides.append(_parse_config(item) if item.get('config') or item.get('preset') else None)
        captures.append(item.get('captures') or [])

    results = run_batch(record_sets, config, overrides=overrides, captures=captures,
                        sharing_client=_sharing_client(), share=_parse_share(payload))

    archive = BytesIO()
    manifest = []
    used_names = set()
    with zipfile.ZipFile(archive, 'w', zipfile.ZIP_DEFLATED) as zf:
        for index, result in enumerate(results):
            entry = {'index': index, **_result_summary(result)}
            if result.success:
                name = result.fileName
                if name in used_names:
                    name = f"{index + 1:02d}_{name}"
                used_names.add(name)
                zf.writestr(name, result.content)
                entry['archiveName'] = name
            manifest.append(entry)
        zf.writestr('manifest.json', json.dumps(manifest, indent=2))

    archive.seek(0)
    succeeded = sum(1 for result in results if result.success)
    current_app.logger.info(f"Batch export: {succeeded}/{len(results)} succeeded")
    return send_file(
        archive,
        as_attachment=True,
        download_name=f"Playbook_Exports_{utc_now().strftime('%Y-%m-%d')}.zip",
        mimetype='application/zip'
    )
