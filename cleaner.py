"""HTML normalisation for mammoth output.

Strips presentational markup and empty containers so the segmenter only sees
headings, paragraphs, lists, tables and images.
"""
import re
from bs4 import BeautifulSoup

_WS = re.compile(r'\s+')
_CELL_P = re.compile(r'^<p>(.*?)</p>$', re.I | re.S)
EMPHASIS = {'strong': 'bold', 'b': 'bold', 'em': 'italic', 'i': 'italic'}


def _fragment(html):
    return BeautifulSoup(html, 'html.parser')

def _set_inner(tag, html):
    frag = _fragment(html)
    tag.clear()
    for node in list(frag.contents):
        tag.append(node.extract())

def _collapse(html):
    return _WS.sub(' ', html.replace('&nbsp;', ' ').replace('\xa0', ' ')).strip()


# ── CLEANING PASSES ──────────────────────────────────────────
def strip_presentation(soup):
    for tag in soup.find_all(style=True):
        del tag['style']
    for br in soup.find_all('br'):
        br.decompose()
    for a in soup.find_all('a'):
        a.replace_with(a.get_text())
    for tag in soup.find_all(list(EMPHASIS)):
        tag.name = EMPHASIS[tag.name]; tag.attrs = {}
    for img in soup.find_all('img', src=lambda s: s is not None and 'undefined' in s):
        img.decompose()

def clean_table_cells(soup):
    for cell in soup.select('table td, table th'):
        content = cell.decode_contents().strip()
        content = _CELL_P.sub(r'\1', content).replace('</p><p>', ' ')
        _set_inner(cell, content)

def hoist_tables(soup):
    """Drop paragraphs that wrap a table, keeping the table itself in place."""
    for p in soup.find_all('p'):
        if p.decomposed: continue
        tables = [t for t in p.find_all('table') if t.find_parent('table') is None]
        if not tables: continue
        for t in tables:
            p.insert_before(t.extract())
        p.decompose()

def collapse_containers(soup):
    # innermost first, so an outer container sees its children already cleaned
    for el in reversed(soup.find_all(['p', 'div', 'span'])):
        if el.decomposed: continue
        content = _collapse(el.decode_contents())
        if not _fragment(content).get_text().strip() and el.find('img') is None:
            el.decompose()
        else:
            _set_inner(el, content)


def clean_html(raw_html):
    """Return the normalised HTML string. Never raises on malformed input."""
    soup = _fragment(raw_html or '')
    strip_presentation(soup)
    clean_table_cells(soup)
    hoist_tables(soup)
    collapse_containers(soup)
    return str(soup)
