"""
Flask Web Application for the QTI editing toolkit
JSON API over parsing, editing, conversion and scoring
"""

import json
import logging

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException

from qtikit.config import Config
from qtikit.converters.json_xml_converter import json_to_xml, xml_to_json
from qtikit.errors import QTIConversionError, UnsupportedVersionError
from qtikit.parsers.factory import get_parser, get_parser_from_xml
from qtikit.scoring.engine import scoring_engine
from qtikit.utils.content_format import JSON, XML, detect_format
from qtikit.utils.json_templates import render_json_template
from qtikit.utils.qti_templates import render_item_template

logging.basicConfig(level=Config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.update(Config.to_dict())


class BadRequest(ValueError):
    pass


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _content(payload: dict) -> str:
    """Document text from an uploaded file or the JSON body"""
    if 'file' in request.files:
        return request.files['file'].read().decode('utf-8')
    content = payload.get('content')
    if not isinstance(content, str) or not content.strip():
        raise BadRequest('No content provided')
    return content


def _parser(payload: dict, content: str):
    version = payload.get('version') or request.form.get('version')
    return get_parser(version) if version else get_parser_from_xml(content)


def _int_field(payload: dict, name: str) -> int:
    try:
        return int(payload[name])
    except (KeyError, TypeError, ValueError):
        raise BadRequest(f'{name} must be an integer') from None


@app.errorhandler(UnsupportedVersionError)
@app.errorhandler(QTIConversionError)
@app.errorhandler(BadRequest)
def handle_bad_request(e):
    return jsonify({'error': str(e)}), 400


@app.errorhandler(Exception)
def handle_error(e):
    if isinstance(e, HTTPException):
        return jsonify({'error': e.description}), e.code
    logger.exception("Unhandled error")
    return jsonify({'error': str(e)}), 500


@app.route('/health')
def health():
    """Health check endpoint"""
    return jsonify({'status': 'healthy'})


@app.route('/parse', methods=['POST'])
def parse():
    """Parse a QTI document into items"""
    payload = _payload()
    content = _content(payload)
    result = _parser(payload, content).parse(content)
    return jsonify(result.to_dict())


@app.route('/format', methods=['POST'])
def format_content():
    payload = _payload()
    content = _content(payload)
    return jsonify({'content': _parser(payload, content).format_xml(content)})


@app.route('/convert', methods=['POST'])
def convert():
    """Convert QTI 3.0 between XML and JSON; target defaults to the other format"""
    payload = _payload()
    content = _content(payload)
    source = detect_format(content)
    target = payload.get('to') or (XML if source == JSON else JSON)

    if target == XML:
        converted = json_to_xml(content)
    elif target == JSON:
        converted = xml_to_json(content)
    else:
        raise BadRequest(f'Unknown target format: {target}')

    return jsonify({'content': converted, 'format': target})


@app.route('/items/insert', methods=['POST'])
def insert_item():
    """Insert an item given as XML, or rendered from item_type"""
    payload = _payload()
    content = payload.get('content') or ''
    parser = get_parser(payload['version']) if payload.get('version') else get_parser_from_xml(content)

    item_xml = payload.get('item_xml')
    if not item_xml:
        if not payload.get('item_type'):
            raise BadRequest('item_xml or item_type is required')
        try:
            item_xml = render_item_template(payload['item_type'], version=parser.version, title=payload.get('title'))
        except ValueError as e:
            raise BadRequest(str(e)) from e

    insert_after_index = None
    if payload.get('insert_after_index') is not None:
        insert_after_index = _int_field(payload, 'insert_after_index')

    updated = parser.insert_item(content, item_xml, insert_after_index)
    return jsonify({'content': updated})


@app.route('/items/reorder', methods=['POST'])
def reorder_items():
    payload = _payload()
    content = _content(payload)
    updated = _parser(payload, content).reorder_items(
        content, _int_field(payload, 'from_index'), _int_field(payload, 'to_index'))
    return jsonify({'content': updated})


@app.route('/items/correct-response', methods=['POST'])
def correct_response():
    """Replace an item's correct response, then format the document"""
    payload = _payload()
    content = _content(payload)
    if not payload.get('item_id') or 'correct_response' not in payload:
        raise BadRequest('item_id and correct_response are required')

    parser = _parser(payload, content)
    updated = parser.update_correct_response(content, payload['item_id'], payload['correct_response'])
    return jsonify({'content': parser.format_xml(updated)})


@app.route('/score', methods=['POST'])
def score():
    """Score {item id: response} against the document's items"""
    payload = _payload()
    content = _content(payload)
    responses = payload.get('responses')
    if not isinstance(responses, dict):
        raise BadRequest('responses must be an object keyed by item id')

    result = _parser(payload, content).parse(content)
    scores = [
        scoring_engine.calculate_item_score(item, responses[item.id])
        for item in result.items if item.id in responses
    ]
    total = scoring_engine.calculate_total_score(scores)

    return jsonify({
        'scores': [s.to_dict() for s in scores],
        'total': total.to_dict(),
        'errors': result.errors,
    })


@app.route('/templates/<version>/<item_type>')
def template(version, item_type):
    """Starter item for a type; ?format=json for the QTI 3.0 JSON form"""
    parser = get_parser(version)
    content_format = request.args.get('format', XML)

    try:
        if content_format == JSON:
            if not parser.profile.accepts_json:
                raise BadRequest(f'QTI {parser.version} has no JSON representation')
            content = json.dumps(render_json_template(item_type), indent=2)
        else:
            content = render_item_template(item_type, version=parser.version)
    except BadRequest:
        raise
    except ValueError as e:
        return jsonify({'error': str(e)}), 404

    return jsonify({'content': content, 'format': content_format, 'version': str(parser.version)})


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=Config.PORT, debug=False)
