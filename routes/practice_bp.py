#!/usr/bin/env python3
"""
Practice Blueprint - JSON API over the registry
Sessions (per mode), recents, settings, saved sequences and kriyas
"""

from flask import Blueprint, Response, current_app, jsonify, request

from yogik.yk_models import CustomConfig, KriyaConfig, Pose, Stage, new_id
from yogik.yk_registry import MODES

# Create blueprint
practice_bp = Blueprint('practice', __name__)


def _registry():
    return current_app.config['YOGIK_REGISTRY']


def _json_body(default=None):
    """Parsed JSON body; ``None`` means the body was present but not valid JSON"""
    if not request.get_data():
        return default
    return request.get_json(silent=True, force=True)


def _bad_request(message):
    return jsonify({'success': False, 'error': message}), 400


def _unknown_mode(mode):
    return jsonify({'success': False, 'error': f'Unknown mode: {mode}'}), 404


# ==================== SESSIONS ====================

@practice_bp.route('/api/<mode>/start', methods=['POST'])
def api_start(mode):
    """Start a practice session with the posted configuration"""
    if mode not in MODES:
        return _unknown_mode(mode)
    data = _json_body(default={})
    if not isinstance(data, dict):
        return _bad_request('Configuration must be a JSON object')

    registry = _registry()
    config = data
    if mode == 'custom' and 'sequence_id' in data:
        saved = registry.sequences.get(data['sequence_id'])
        if saved is None:
            return jsonify({'success': False, 'error': 'Sequence not found'}), 404
        rounds = data.get('rounds', 1)
        if isinstance(rounds, bool) or not isinstance(rounds, int):
            return _bad_request('rounds must be an integer')
        config = CustomConfig.from_saved(saved, rounds=rounds)
    elif mode == 'kriya' and 'kriya_id' in data:
        saved = registry.kriyas.get(data['kriya_id'])
        if saved is None:
            return jsonify({'success': False, 'error': 'Kriya not found'}), 404
        config = KriyaConfig.from_saved(saved)

    return jsonify(registry.start(mode, config))


@practice_bp.route('/api/<mode>/pause', methods=['POST'])
def api_pause(mode):
    if mode not in MODES:
        return _unknown_mode(mode)
    return jsonify(_registry().sessions[mode].pause())


@practice_bp.route('/api/<mode>/resume', methods=['POST'])
def api_resume(mode):
    if mode not in MODES:
        return _unknown_mode(mode)
    return jsonify(_registry().sessions[mode].resume())


@practice_bp.route('/api/<mode>/stop', methods=['POST'])
def api_stop(mode):
    if mode not in MODES:
        return _unknown_mode(mode)
    return jsonify(_registry().sessions[mode].stop())


@practice_bp.route('/api/<mode>/state')
def api_state(mode):
    """Current snapshot of a mode's session"""
    if mode not in MODES:
        return _unknown_mode(mode)
    return jsonify(_registry().sessions[mode].get_state())


@practice_bp.route('/api/<mode>/events')
def api_events(mode):
    """Events after sequence number ?since=N"""
    if mode not in MODES:
        return _unknown_mode(mode)
    try:
        since = int(request.args.get('since', 0))
    except ValueError:
        return _bad_request('since must be an integer')
    events = _registry().sessions[mode].events_since(since)
    return jsonify([e.to_dict() for e in events])


# ==================== RECENTS ====================

@practice_bp.route('/api/<mode>/history')
def api_history(mode):
    if mode not in MODES:
        return _unknown_mode(mode)
    return jsonify([e.to_dict() for e in _registry().history[mode].entries()])


@practice_bp.route('/api/<mode>/history/<entry_id>', methods=['DELETE'])
def api_history_delete(mode, entry_id):
    if mode not in MODES:
        return _unknown_mode(mode)
    if not _registry().history[mode].delete(entry_id):
        return jsonify({'success': False, 'error': 'History entry not found'}), 404
    return jsonify({'success': True, 'message': 'History entry deleted'})


# ==================== SETTINGS ====================

@practice_bp.route('/api/settings', methods=['GET'])
def api_settings():
    return jsonify(_registry().settings.load_settings().to_dict())


@practice_bp.route('/api/settings', methods=['POST'])
def api_settings_save():
    """Save one or more settings: {"prep_seconds": 10, ...}"""
    data = _json_body()
    if not isinstance(data, dict) or not data:
        return _bad_request('Settings must be a non-empty JSON object')

    settings = _registry().settings
    rejected = [key for key, value in data.items() if not settings.save_setting(key, value)]
    if rejected:
        return jsonify({'success': False, 'error': f"Invalid settings: {', '.join(rejected)}",
                        'settings': settings.load_settings().to_dict()}), 400
    return jsonify({'success': True, 'settings': settings.load_settings().to_dict()})


@practice_bp.route('/api/settings/reset', methods=['POST'])
def api_settings_reset():
    settings = _registry().settings
    if not settings.reset_to_defaults():
        return jsonify({'success': False, 'error': 'Could not reset settings'}), 500
    return jsonify({'success': True, 'settings': settings.load_settings().to_dict()})


# ==================== SAVED SEQUENCES ====================

@practice_bp.route('/api/sequences', methods=['GET'])
def api_sequences():
    return jsonify([s.to_dict() for s in _registry().sequences.list()])


@practice_bp.route('/api/sequences', methods=['POST'])
def api_sequences_save():
    """Save a sequence: {"name": str, "poses": [...]}"""
    data = _json_body()
    if not isinstance(data, dict):
        return _bad_request('Sequence must be a JSON object')
    try:
        poses = [Pose.from_dict(dict({'id': new_id()}, **p)) for p in data.get('poses', [])]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        return _bad_request(f'Invalid pose: {e}')

    sequence = _registry().sequences.save(data.get('name', ''), poses)
    if sequence is None:
        return _bad_request('A sequence needs a name and at least one pose')
    return jsonify({'success': True, 'sequence': sequence.to_dict()})


@practice_bp.route('/api/sequences/<sequence_id>', methods=['DELETE'])
def api_sequences_delete(sequence_id):
    if not _registry().sequences.delete(sequence_id):
        return jsonify({'success': False, 'error': 'Sequence not found'}), 404
    return jsonify({'success': True, 'message': 'Sequence deleted'})


@practice_bp.route('/api/sequences/<sequence_id>/export')
def api_sequences_export(sequence_id):
    library = _registry().sequences
    sequence = library.get(sequence_id)
    if sequence is None:
        return jsonify({'success': False, 'error': 'Sequence not found'}), 404
    return Response(
        library.export_sequence(sequence),
        mimetype='application/json',
        headers={'Content-Disposition': f'attachment; filename="{library.export_filename(sequence)}"'},
    )


@practice_bp.route('/api/sequences/import', methods=['POST'])
def api_sequences_import():
    """Import an exported .yogikseq document (raw body)"""
    sequence = _registry().sequences.import_sequence(request.get_data())
    if sequence is None:
        return _bad_request('Not a valid sequence file')
    return jsonify({'success': True, 'sequence': sequence.to_dict()})


# ==================== SAVED KRIYAS ====================

@practice_bp.route('/api/kriyas', methods=['GET'])
def api_kriyas():
    return jsonify([k.to_dict() for k in _registry().kriyas.list()])


@practice_bp.route('/api/kriyas', methods=['POST'])
def api_kriyas_save():
    """Save a kriya: {"name": str, "stages": [...], "repeatCount": int, ...}"""
    data = _json_body()
    if not isinstance(data, dict):
        return _bad_request('Kriya must be a JSON object')
    try:
        stages = [Stage.from_dict(s) for s in data.get('stages', data.get('rounds', []))]
        kriya = _registry().kriyas.save(
            data.get('name', ''),
            stages,
            breath_in_label=data.get('kriyaBreathInLabel', 'Inhale'),
            breath_out_label=data.get('kriyaBreathOutLabel', 'Exhale'),
            repeat_count=int(data.get('repeatCount', 1)),
            rest_seconds=float(data.get('restSeconds', 0.0)),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        return _bad_request(f'Invalid kriya: {e}')

    if kriya is None:
        return _bad_request('A kriya needs a name and at least one stage')
    return jsonify({'success': True, 'kriya': kriya.to_dict()})


@practice_bp.route('/api/kriyas/<kriya_id>', methods=['DELETE'])
def api_kriyas_delete(kriya_id):
    if not _registry().kriyas.delete(kriya_id):
        return jsonify({'success': False, 'error': 'Kriya not found'}), 404
    return jsonify({'success': True, 'message': 'Kriya deleted'})
