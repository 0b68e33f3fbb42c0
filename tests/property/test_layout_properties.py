"""
Property-Based Tests for layout reconstruction.

Feature: pdf-ingestion, layout extraction
"""
import math

from hypothesis import given, settings, strategies as st

from pdf_ingest.core.config import PDFProcessingConfig
from pdf_ingest.engine.layout_extractor import build_page_text, detect_columns
from pdf_ingest.engine.page_analyzer import TextItem

CONFIG = PDFProcessingConfig()

words = st.text(alphabet="abcdefghijklmnopqrstuvwxyz", min_size=1, max_size=12)

text_items = st.builds(
    TextItem,
    text=words,
    x=st.integers(min_value=0, max_value=600).map(float),
    y=st.integers(min_value=0, max_value=842).map(float),
    font_size=st.sampled_from([8.0, 10.0, 12.0, 24.0]),
)


# =============================================================================
# Column detection
# =============================================================================

@given(
    left=st.integers(min_value=20, max_value=120),
    gap=st.integers(min_value=200, max_value=450),
    left_count=st.integers(min_value=25, max_value=100),
    right_count=st.integers(min_value=25, max_value=100),
)
@settings(max_examples=100)
def test_two_separated_groups_give_two_columns(left, gap, left_count, right_count):
    """
    For two groups of items at well separated x positions, exactly two
    column positions are detected, in ascending order, each within half a
    bucket of its group.
    """
    right = left + gap
    items = [TextItem("l", float(left), 700.0 - i) for i in range(left_count)]
    items += [TextItem("r", float(right), 700.0 - i) for i in range(right_count)]

    columns = detect_columns(items)

    bucket = max(5, math.floor(gap / 100))
    assert len(columns) == 2
    assert columns[0] < columns[1]
    assert abs(columns[0] - left) <= bucket / 2
    assert abs(columns[1] - right) <= bucket / 2


@given(items=st.lists(text_items, min_size=0, max_size=150))
@settings(max_examples=100)
def test_columns_sorted_and_separated(items):
    """Detected columns are ascending and at least three buckets apart."""
    columns = detect_columns(items)

    if len(items) < 50:
        assert columns == []
        return

    xs = [item.x for item in items]
    bucket = max(5, math.floor((max(xs) - min(xs)) / 100))
    for first, second in zip(columns, columns[1:]):
        assert second - first >= 3 * bucket


# =============================================================================
# Page text reconstruction
# =============================================================================

@given(items=st.lists(text_items, min_size=1, max_size=120))
@settings(max_examples=100)
def test_page_text_keeps_every_word(items):
    """Every item's text survives reconstruction, in some order."""
    text = build_page_text(items, CONFIG)

    output_words = sorted(text.split())
    assert output_words == sorted(item.text for item in items)


@given(items=st.lists(text_items, min_size=1, max_size=120))
@settings(max_examples=100)
def test_page_text_lines_are_trimmed(items):
    """Lines never carry leading or trailing whitespace and the page ends with a newline."""
    text = build_page_text(items, CONFIG)

    assert text.endswith("\n")
    assert "\n\n\n" not in text
    for line in text.split("\n"):
        assert line == line.strip()
