"""Command-line entry point for the QTI editing toolkit"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import Config
from .converters.json_xml_converter import JsonXmlConverter
from .errors import QTIError
from .parsers.factory import get_parser, get_parser_from_xml
from .scoring.engine import ScoringEngine
from .utils.content_format import JSON, XML, detect_format
from .utils.json_templates import render_json_template
from .utils.qti_templates import ITEM_TYPE_LABELS, render_item_template
from .utils.text import html_to_text, truncate


def _read(path: str) -> str:
    return Path(path).read_text(encoding='utf-8')


def _write_or_print(content: str, output: str = None):
    if output:
        Path(output).write_text(content, encoding='utf-8')
        print(f"✓ Wrote {output}")
    else:
        print(content)


def _parser_for(content: str, version: str = None):
    return get_parser(version) if version else get_parser_from_xml(content)


def cmd_parse(args) -> int:
    content = _read(args.file)
    result = _parser_for(content, args.qti_version).parse(content)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0 if result.success else 1

    print(f"📄 {args.file} (QTI {result.version})")
    print(f"   Items: {len(result.items)}")
    for index, item in enumerate(result.items, start=1):
        label = ITEM_TYPE_LABELS.get(item.type, item.type)
        print(f"   {index}. [{label}] {item.title}: {truncate(html_to_text(item.prompt))}")
    for unsupported in result.unsupported_elements:
        print(f"   ⚠️  Unsupported {unsupported.type} x{unsupported.count} ({unsupported.description})")
    for error in result.errors:
        print(f"   ✗ {error}")

    return 0 if result.success else 1


def cmd_format(args) -> int:
    content = _read(args.file)
    _write_or_print(_parser_for(content, args.qti_version).format_xml(content), args.output)
    return 0


def cmd_convert(args) -> int:
    content = _read(args.file)
    converter = JsonXmlConverter(verbose=args.verbose)

    target = args.to or (XML if detect_format(content) == JSON else JSON)
    if target == XML:
        converted = converter.json_to_xml(content)
    else:
        converted = converter.xml_to_json(content)

    _write_or_print(converted, args.output)
    return 0


def cmd_template(args) -> int:
    if args.format == JSON:
        content = json.dumps(render_json_template(args.item_type, title=args.title), indent=2)
    else:
        content = render_item_template(args.item_type, version=args.qti_version, title=args.title)
    _write_or_print(content, args.output)
    return 0


def cmd_score(args) -> int:
    content = _read(args.file)
    responses = json.loads(_read(args.responses))
    result = _parser_for(content, args.qti_version).parse(content)

    engine = ScoringEngine(verbose=args.verbose)
    scores = []
    for item in result.items:
        if item.id not in responses:
            continue
        score = engine.calculate_item_score(item, responses[item.id])
        scores.append(score)
        marker = '✓' if score.is_correct else ('✎' if score.requires_manual_scoring else '✗')
        print(f"   {marker} {item.id}: {score.score:g}/{score.max_score:g}")

    total = engine.calculate_total_score(scores)
    print(f"\n📊 Total: {total.total_score:g}/{total.max_total_score:g} ({total.percentage_score:.1f}%)")
    print(f"   Correct: {total.correct_items}/{total.total_items}")
    if total.requires_manual_scoring:
        print("   ⚠️  Some items need manual scoring")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='qtikit',
        description='Parse, edit, convert and score QTI 2.1 / 3.0 assessment content'
    )
    parser.add_argument('--verbose', action='store_true', help='Print verbose output')
    subparsers = parser.add_subparsers(dest='command', required=True)

    parse_cmd = subparsers.add_parser('parse', help='List the items in a QTI document')
    parse_cmd.add_argument('file')
    parse_cmd.add_argument('--qti-version', choices=['2.1', '3.0'], help='Skip version detection')
    parse_cmd.add_argument('--json', action='store_true', help='Print the full parse result as JSON')
    parse_cmd.set_defaults(func=cmd_parse)

    format_cmd = subparsers.add_parser('format', help='Pretty-print QTI XML')
    format_cmd.add_argument('file')
    format_cmd.add_argument('--qti-version', choices=['2.1', '3.0'])
    format_cmd.add_argument('-o', '--output')
    format_cmd.set_defaults(func=cmd_format)

    convert_cmd = subparsers.add_parser('convert', help='Convert QTI 3.0 between XML and JSON')
    convert_cmd.add_argument('file')
    convert_cmd.add_argument('--to', choices=[XML, JSON], help='Target format (default: the other one)')
    convert_cmd.add_argument('-o', '--output')
    convert_cmd.set_defaults(func=cmd_convert)

    template_cmd = subparsers.add_parser('template', help='Print a starter item')
    template_cmd.add_argument('item_type', choices=sorted(ITEM_TYPE_LABELS))
    template_cmd.add_argument('--qti-version', choices=['2.1', '3.0'], default=Config.DEFAULT_QTI_VERSION)
    template_cmd.add_argument('--format', choices=[XML, JSON], default=XML)
    template_cmd.add_argument('--title')
    template_cmd.add_argument('-o', '--output')
    template_cmd.set_defaults(func=cmd_template)

    score_cmd = subparsers.add_parser('score', help='Score responses against a QTI document')
    score_cmd.add_argument('file')
    score_cmd.add_argument('responses', help='JSON file mapping item id to response value')
    score_cmd.add_argument('--qti-version', choices=['2.1', '3.0'])
    score_cmd.set_defaults(func=cmd_score)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else Config.LOG_LEVEL,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        return args.func(args)
    except (QTIError, ValueError, OSError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
