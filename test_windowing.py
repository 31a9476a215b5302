"""
Content Windowing Tests

Tests for rendering a book's section tree into a bounded text window.
"""

from marginalia.research.models import BookDocument, DocumentSection
from marginalia.research.research_settings import ResearchSettings
from marginalia.research.windowing import ContentWindower, estimate_tokens


def make_book(count: int, content_chars: int = 50) -> BookDocument:
    return BookDocument(
        title="Moby-Dick",
        author="Herman Melville",
        sections=tuple(
            DocumentSection(id=f"ch{i}", title=f"Chapter {i}", content="x" * content_chars)
            for i in range(1, count + 1)
        ),
    )


def test_empty_document_renders_empty_string():
    """A document without sections has no window at all."""
    document = BookDocument(title="Empty", author="Nobody")
    assert ContentWindower().render(document) == ""


def test_render_format_and_depth_first_order():
    """Header, indented headings and content appear in document order."""
    document = BookDocument(
        title="Walden",
        author="Thoreau",
        sections=(
            DocumentSection(
                id="1",
                title="Economy",
                content="Most men lead lives of quiet desperation.",
                children=(DocumentSection(id="1.1", title="Clothing"),),
            ),
            DocumentSection(id="2", title="Solitude", content="I never found the companion."),
        ),
    )

    rendered = ContentWindower().render(document)

    assert rendered == (
        'Book: "Walden" by Thoreau\n\n'
        "## Economy\n"
        "Most men lead lives of quiet desperation.\n\n"
        "  ## Clothing\n"
        "## Solitude\n"
        "I never found the companion.\n\n"
    )
    print("[PASS] Window rendered depth-first with indentation")


def test_header_without_author():
    document = BookDocument(title="Anonymous", sections=(DocumentSection(id="a", title="A"),))
    assert ContentWindower().render(document).startswith('Book: "Anonymous"\n\n')


def test_section_budget_truncates_with_single_marker():
    """Only max_sections sections are admitted, followed by one marker."""
    settings = ResearchSettings(max_sections=5)
    rendered = ContentWindower().render(make_book(7), settings)

    assert rendered.count("## Chapter") == 5
    assert "## Chapter 6" not in rendered
    assert rendered.count("[Content truncated") == 1
    assert "section limit of 5 reached, 2 sections omitted" in rendered
    assert rendered.endswith("]\n")


def test_nested_sections_count_towards_budget():
    child_sections = tuple(DocumentSection(id=f"c{i}", title=f"Part {i}") for i in range(6))
    document = BookDocument(
        title="Nested",
        sections=(DocumentSection(id="root", title="Root", children=child_sections),),
    )

    rendered = ContentWindower().render(document, ResearchSettings(max_sections=5))

    assert "## Root" in rendered
    assert rendered.count("  ## Part") == 4
    assert "2 sections omitted" in rendered


def test_token_budget_never_exceeded():
    """Large sections are cut at whole-section boundaries under the token limit."""
    settings = ResearchSettings(token_limit_per_agent=25_000, max_sections=50)
    rendered = ContentWindower().render(make_book(5, content_chars=40_000), settings)

    assert estimate_tokens(rendered) <= 25_000
    assert rendered.count("## Chapter") == 2
    assert rendered.count("[Content truncated") == 1
    assert "token limit of 25000 reached, 3 sections omitted" in rendered


def test_first_section_over_budget_leaves_header_and_marker():
    settings = ResearchSettings(token_limit_per_agent=25_000)
    rendered = ContentWindower().render(make_book(1, content_chars=200_000), settings)

    assert "## Chapter 1" not in rendered
    assert rendered.startswith('Book: "Moby-Dick" by Herman Melville\n\n[Content truncated: token')
    assert "1 section omitted" in rendered


def test_no_marker_when_everything_fits():
    rendered = ContentWindower().render(make_book(3))
    assert "[Content truncated" not in rendered
    assert rendered.count("## Chapter") == 3


def test_rendering_is_idempotent():
    windower = ContentWindower()
    document = make_book(30, content_chars=500)
    settings = ResearchSettings(max_sections=10)

    assert windower.render(document, settings) == windower.render(document, settings)


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_document_filling_budget_exactly_is_kept_whole():
    """A book whose full render is exactly the token limit gets no marker."""
    header = 'Book: "B"\n\n'
    framing = len("## T\n") + len("\n\n")
    content = "x" * (100_000 - len(header) - framing)
    document = BookDocument(title="B", sections=(DocumentSection(id="t", title="T", content=content),))
    settings = ResearchSettings(token_limit_per_agent=25_000, max_sections=5)

    rendered = ContentWindower().render(document, settings)

    assert len(rendered) == 100_000
    assert estimate_tokens(rendered) == 25_000
    assert "[Content truncated" not in rendered
    assert rendered.endswith(content + "\n\n")
    print("[PASS] Exact-fit document rendered whole")


def test_last_section_admitted_without_marker_room():
    """Only a section with more sections after it must leave room for the marker."""
    header = 'Book: "B"\n\n'
    first = DocumentSection(id="1", title="A", content="a" * 100)
    first_len = len("## A\n") + 100 + 2
    last_content = "b" * (100_000 - len(header) - first_len - len("## Z\n") - 2)
    document = BookDocument(
        title="B",
        sections=(first, DocumentSection(id="2", title="Z", content=last_content)),
    )

    rendered = ContentWindower().render(document, ResearchSettings(token_limit_per_agent=25_000))

    assert rendered.count("## ") == 2
    assert "[Content truncated" not in rendered
    assert estimate_tokens(rendered) <= 25_000


def test_marker_still_fits_after_exact_fill_with_sections_remaining():
    """When more sections follow, the admitted prefix plus marker stays in budget."""
    settings = ResearchSettings(token_limit_per_agent=25_000, max_sections=50)
    rendered = ContentWindower().render(make_book(2, content_chars=99_900), settings)

    assert estimate_tokens(rendered) <= 25_000
    assert rendered.count("[Content truncated") == 1
