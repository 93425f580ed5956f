"""
Preview Session

In-process editing state for one QTI document: the content text, the parsed
items, and the learner responses and scores recorded against them. Every
edit rewrites the XML text and re-parses it, so the item list is always a
projection of the current content.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import Config
from .models.qti_items import ParseResult, QTIItem, UnsupportedElement
from .models.qti_versions import QTIVersion
from .parsers.factory import get_parser, get_parser_from_xml
from .parsers.qti_parser import QTIParser
from .scoring.engine import ScoringEngine, scoring_engine
from .scoring.types import ItemResponse, ItemScore, TotalScore
from .utils.content_format import CONTENT_FORMATS, XML, detect_format

logger = logging.getLogger(__name__)


def _empty_total() -> TotalScore:
    return TotalScore(
        total_score=0.0,
        max_total_score=0.0,
        percentage_score=0.0,
        correct_items=0,
        total_items=0,
        requires_manual_scoring=False,
    )


class PreviewSession:
    """
    Editing and preview state for a single document

    With no version given, the version is detected from the content on each
    load; change_version() pins it.
    """

    def __init__(self, version: Optional[Union[QTIVersion, str]] = None,
                 engine: Optional[ScoringEngine] = None, verbose: bool = False):
        self.selected_version: Optional[QTIVersion] = QTIVersion.coerce(version) if version else None
        self.detected_version: Optional[QTIVersion] = None
        self.engine = engine or scoring_engine
        self.verbose = verbose

        self.content = ''
        self.selected_format = XML
        self.detected_format: Optional[str] = None
        self.format_locked = False

        self.items: List[QTIItem] = []
        self.errors: List[str] = []
        self.unsupported_elements: List[UnsupportedElement] = []

        self.scoring_enabled = True
        self.responses: Dict[str, ItemResponse] = {}
        self.scores: Dict[str, ItemScore] = {}
        self.total: TotalScore = _empty_total()

    @property
    def version(self) -> QTIVersion:
        """Version used for edits: pinned, else detected, else configured default"""
        return self.selected_version or self.detected_version or QTIVersion.coerce(Config.DEFAULT_QTI_VERSION)

    @property
    def has_content(self) -> bool:
        return bool(self.content.strip())

    def _parser(self) -> QTIParser:
        if self.selected_version is not None:
            return get_parser(self.selected_version)
        if self.has_content:
            return get_parser_from_xml(self.content)
        return get_parser(self.version)

    def _refresh(self) -> ParseResult:
        """Re-parse the current content and update the derived state"""
        result = self._parser().parse(self.content)

        self.items = result.items
        self.errors = result.errors
        self.unsupported_elements = result.unsupported_elements
        self.detected_version = result.version
        self.detected_format = detect_format(self.content)
        self.selected_format = self.detected_format
        self.format_locked = self.has_content

        if self.verbose:
            print(f"   📝 {len(self.items)} items parsed (QTI {result.version})")
            for error in self.errors:
                print(f"   ⚠️  {error}")

        return result

    # --- Content -----------------------------------------------------------

    def load(self, content: str) -> ParseResult:
        """Replace the document with new content and parse it"""
        self.content = content or ''
        return self._refresh()

    def load_file(self, path: Union[str, Path]) -> ParseResult:
        return self.load(Path(path).read_text(encoding='utf-8'))

    def create_blank(self, content_format: Optional[str] = None) -> ParseResult:
        """
        Start a new document from the version's blank template

        Args:
            content_format: 'xml' or 'json' (JSON only for QTI 3.0);
                defaults to the currently selected format

        Raises:
            ValueError: if the version has no template in that format
        """
        use_format = content_format or self.selected_format
        self.content = get_parser(self.version).get_blank_template(use_format)
        result = self._refresh()
        self.format_locked = True
        return result

    def clear(self):
        self.content = ''
        self.items = []
        self.errors = []
        self.unsupported_elements = []
        self.detected_format = None
        self.selected_format = XML
        self.format_locked = False

    def set_format(self, content_format: str) -> bool:
        """Select the format for the next blank document; refused once content exists"""
        if self.format_locked:
            logger.warning("Format cannot be changed once content is created")
            return False
        if content_format not in CONTENT_FORMATS:
            raise ValueError(f"Unknown content format: {content_format}")
        self.selected_format = content_format
        return True

    def change_version(self, version: Union[QTIVersion, str]) -> Optional[ParseResult]:
        """Pin the version and re-parse any existing content with it"""
        self.selected_version = QTIVersion.coerce(version)
        if self.content:
            return self._refresh()
        return None

    # --- Edits -------------------------------------------------------------

    def add_item(self, item_xml: str, insert_after_index: Optional[int] = None) -> Optional[str]:
        """
        Insert an item and re-parse

        Returns:
            The id of the item now at the insertion point, or None when the
            insert did not produce an item there
        """
        previous_count = len(self.items)
        self.content = get_parser(self.version).insert_item(self.content, item_xml, insert_after_index)
        self._refresh()

        if insert_after_index is None:
            new_index = previous_count
        elif insert_after_index < 0:
            new_index = 0
        else:
            new_index = insert_after_index + 1

        if new_index < len(self.items):
            return self.items[new_index].id
        return None

    def set_correct_response(self, item_id: str, correct_response: Union[str, List[str], int, float]) -> ParseResult:
        """Write the correct response into the XML, format it and re-parse"""
        parser = get_parser(self.version)
        updated = parser.update_correct_response(self.content, item_id, correct_response)
        self.content = parser.format_xml(updated)
        return self._refresh()

    def reorder(self, from_index: int, to_index: int) -> ParseResult:
        self.content = get_parser(self.version).reorder_items(self.content, from_index, to_index)
        return self._refresh()

    def move_item(self, item_id: str, target_item_id: str) -> Optional[ParseResult]:
        """Move item_id to the position currently held by target_item_id"""
        if item_id == target_item_id:
            return None
        ids = [item.id for item in self.items]
        if item_id not in ids or target_item_id not in ids:
            return None
        return self.reorder(ids.index(item_id), ids.index(target_item_id))

    def find_item(self, item_id: str) -> Optional[QTIItem]:
        for item in self.items:
            if item.id == item_id or item.identifier == item_id:
                return item
        return None

    # --- Scoring -----------------------------------------------------------

    def record_response(self, item_id: str, value: Any, response_id: str = 'RESPONSE') -> Optional[ItemScore]:
        """
        Store a learner response and, with scoring on, score it

        Returns:
            The new ItemScore, or None if scoring is off or the item is unknown
        """
        response = ItemResponse(item_id=item_id, value=value, response_id=response_id)
        self.responses[item_id] = response

        item = self.find_item(item_id)
        if item is None or not self.scoring_enabled:
            logger.debug(f"Response for {item_id} stored without scoring")
            return None

        score = self.engine.calculate_item_score(item, response)
        self.scores[item_id] = score
        self._update_total()
        return score

    def apply_manual_score(self, item_id: str, score: float, feedback: Optional[str] = None) -> Optional[ItemScore]:
        """Override an existing item score with a grader's score"""
        existing = self.scores.get(item_id)
        if existing is None:
            return None

        updated = ItemScore(
            item_id=existing.item_id,
            score=score,
            max_score=existing.max_score,
            feedback=feedback,
            is_correct=score == existing.max_score,
            partial_credit=0 < score < existing.max_score,
            requires_manual_scoring=False,
        )
        self.scores[item_id] = updated
        self._update_total()
        return updated

    def set_scoring_enabled(self, enabled: bool):
        """Turning scoring on re-scores every stored response"""
        self.scoring_enabled = enabled
        if not enabled:
            return

        self.scores = {}
        for item_id, response in self.responses.items():
            item = self.find_item(item_id)
            if item is not None:
                self.scores[item_id] = self.engine.calculate_item_score(item, response)
        self._update_total()

    def reset_scoring(self):
        self.responses = {}
        self.scores = {}
        self.total = _empty_total()

    def _update_total(self):
        self.total = self.engine.calculate_total_score(self.scores.values())

    # --- Export ------------------------------------------------------------

    @property
    def export_filename(self) -> str:
        extension = CONTENT_FORMATS[self.selected_format].file_extension
        return f"qti-{self.version}-item{extension}"

    def export(self, output_dir: Optional[Union[str, Path]] = None) -> str:
        """
        Current document text; with output_dir, also write it there

        Returns:
            The content, or the written file's path when output_dir is given
        """
        if output_dir is None:
            return self.content

        output_path = Path(output_dir) / self.export_filename
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.content, encoding='utf-8')
        if self.verbose:
            print(f"   💾 Saved {output_path}")
        return str(output_path)
