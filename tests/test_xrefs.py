"""Tests for xrefs.link_refs."""

from xrefs import link_refs

IMAGES = [{"id": "fig-1", "src": "media/image001.png", "alt": "Figura 1"},
          {"id": "fig-2", "src": "media/image002.png", "alt": "Figura 2"}]
TABLES = [{"title": "Tabla", "content": [["a"]], "id": "table-1"}]


def test_no_mentions_is_a_noop():
    html = "Plain text with figures of speech and a table of contents."
    assert link_refs(html, IMAGES, TABLES) == html


def test_links_each_figure():
    out = link_refs("See Figure 1 and Figure 2.", IMAGES, TABLES)
    assert out == ('See <xref ref-type="fig" rid="fig-1">Figure 1</xref> and '
                   '<xref ref-type="fig" rid="fig-2">Figure 2</xref>.')


def test_links_spanish_table():
    out = link_refs("Ver Tabla 1", IMAGES, TABLES)
    assert out == 'Ver <xref ref-type="table" rid="table-1">Tabla 1</xref>'


def test_every_occurrence_is_linked():
    out = link_refs("Figura 1 y otra vez Figura 1", IMAGES, [])
    assert out.count('rid="fig-1"') == 2


def test_number_must_match_whole_word():
    assert link_refs("Figure 10", IMAGES[:1], []) == "Figure 10"
    assert link_refs("Table 3", [], TABLES) == "Table 3"


def test_case_sensitive():
    assert link_refs("figure 1 and table 1", IMAGES, TABLES) == "figure 1 and table 1"


def test_missing_space_is_normalised():
    assert link_refs("Figure1", IMAGES, []) == '<xref ref-type="fig" rid="fig-1">Figure 1</xref>'


def test_linking_twice_is_stable():
    once = link_refs("Figure 2 and Table 1", IMAGES, TABLES)
    assert link_refs(once, IMAGES, TABLES) == once
