"""Section segmentation of cleaned manuscript HTML.

Builds the ordered semantic model consumed by jats.build_xml:

    {'sections': [...], 'keywords': [...], 'images': [...]}

Sections are plain dicts {'title', 'content', 'subsections', 'id'}. Title,
abstract and keyword sections carry a string; body sections carry a list of
content units (HTML fragment strings or list dicts); tables carry rows.
"""
import re
import logging
from html import escape
from bs4 import BeautifulSoup, Comment

import boxed_text
from errors import EmptyDocumentError, MalformedBoxedTextError
from xrefs import link_refs

logger = logging.getLogger(__name__)

# ── SECTION TITLES ───────────────────────────────────────────
ARTICLE_TITLE = 'Título del artículo'
SECONDARY_TITLE = 'Título secundario'
AUTHORS = 'Autores'
AFFILIATIONS = 'Afiliaciones'
BOXED_TEXT = 'Boxed Text'
TABLE = 'Tabla'
ABSTRACT, RESUMEN = 'Abstract', 'Resumen'
KEYWORDS, PALABRAS_CLAVES = 'Keywords', 'Palabras claves'

FRONT_MATTER = (ARTICLE_TITLE, SECONDARY_TITLE, ABSTRACT, RESUMEN, KEYWORDS,
                PALABRAS_CLAVES, AUTHORS, AFFILIATIONS, BOXED_TEXT)

# title → (structural class set by the style map, literal searched as fallback)
KEYWORD_SECTIONS = {
    ABSTRACT:        ('abstract',       'Abstract'),
    RESUMEN:         ('resumen',        'Resumen'),
    KEYWORDS:        ('keywords',       'Keywords'),
    PALABRAS_CLAVES: ('palabrasclaves', 'Palabras claves'),
}

SUBHEADINGS = ('h3', 'h4', 'h5')


def split_keywords(text):
    """'Keywords: a, b; c.' → ['a', 'b', 'c']"""
    _, sep, rest = (text or '').partition(': ')
    if not sep: return []
    return [k.strip().rstrip('.') for k in re.split(r'[,;]', rest) if k.strip().rstrip('.')]


# ── FRONT MATTER ─────────────────────────────────────────────
def extract_authors(soup):
    content = [{'type': 'title', 'text': p.get_text().strip()} for p in soup.select('p.authors')]
    for p in soup.select('p.affiliations'):
        text = p.get_text().strip()
        if text: content.append({'type': 'affiliation', 'text': text})
    return {'title': AUTHORS, 'content': content} if content else None

def extract_boxed_text(soup, policy=boxed_text.STRICT):
    sections = []
    for p in soup.select('p.boxedtext'):
        try:
            blocks = boxed_text.tokenize(p.decode_contents(), policy)
        except MalformedBoxedTextError as e:
            logger.debug('Dropping boxed text paragraph: %s', e)
            continue
        for name, lines in blocks:
            sections.append({'title': BOXED_TEXT, 'content': lines, 'block': name})
    return sections

def extract_titles(soup):
    h1, h2 = soup.find('h1'), soup.find('h2')
    title = h1.get_text().strip() if h1 else ''
    secondary = (h2.get_text().strip() if h2 else '') or title
    out = []
    if title: out.append({'title': ARTICLE_TITLE, 'content': title})
    out.append({'title': SECONDARY_TITLE, 'content': secondary})
    return out


# ── FIGURES & TABLES ─────────────────────────────────────────
def extract_images(soup):
    return [{'id': f'fig-{n}', 'src': img.get('src', ''), 'alt': img.get('alt') or f'Figura {n}'}
            for n, img in enumerate(soup.find_all('img'), 1)]

def extract_tables(soup):
    tables = []; counter = 0
    for table in soup.find_all('table'):
        rows = []
        for tr in table.find_all('tr'):
            cells = [c.get_text().strip() for c in tr.find_all(['td', 'th'])]
            if cells: rows.append(cells)
        width = max((len(r) for r in rows), default=0)
        rows = [r + [''] * (width - len(r)) for r in rows]
        counter += 1
        tables.append({'title': TABLE, 'content': rows, 'id': f'table-{counter}'})
    return tables

def _link_text(p, images, tables):
    # text nodes only; attribute values such as img alt stay untouched
    for s in p.find_all(string=True):
        if isinstance(s, Comment) or s.find_parent('xref') is not None: continue
        text = escape(str(s), quote=False)
        linked = link_refs(text, images, tables)
        if linked == text: continue
        for node in list(BeautifulSoup(linked, 'html.parser').contents):
            s.insert_before(node.extract())
        s.extract()

def annotate_paragraphs(soup, images, tables):
    for p in soup.find_all('p'):
        if p.find('table') is not None or '&lt;table' in p.decode_contents():
            p.decompose(); continue
        _link_text(p, images, tables)


# ── BODY SECTIONS ────────────────────────────────────────────
def _following(el, stop):
    nxt = el.find_next_sibling()
    while nxt is not None and nxt.name not in stop:
        yield nxt
        nxt = nxt.find_next_sibling()

def _list_unit(el):
    return {'type': 'list', 'listType': 'bullet' if el.name == 'ul' else 'ordered',
            'items': [{'type': 'list-item', 'text': li.get_text().strip()} for li in el.find_all('li')]}

def _unit(el):
    return _list_unit(el) if el.name in ('ul', 'ol') else el.decode_contents().strip()

def read_section(h3):
    content, subsections = [], []
    consumed = set()
    for el in _following(h3, ('h3',)):
        if id(el) in consumed: continue
        if el.name in ('h4', 'h5'):
            body = list(_following(el, SUBHEADINGS))
            consumed.update(id(b) for b in body)
            title = el.get_text().strip()
            if title:
                subsections.append({'title': title, 'content': [_unit(b) for b in body],
                                    'isTitle5': el.name == 'h5'})
        else:
            content.append(_unit(el))
    return content, subsections

def extract_body_sections(soup, processed):
    sections = []
    for h3 in soup.find_all('h3'):
        title = h3.get_text().strip()
        if title in processed: continue
        content, subsections = read_section(h3)
        if content or subsections:
            sections.append({'title': title, 'content': content, 'subsections': subsections})
            processed.add(title)
    return sections


# ── KEYWORD SECTIONS ─────────────────────────────────────────
def find_keyword_paragraph(soup, css_class, literal):
    p = soup.find('p', class_=css_class)
    if p is None:
        p = soup.find(lambda t: t.name == 'p' and literal in t.get_text())
    return p.get_text().strip() if p is not None else None

def extract_keyword_sections(soup, processed):
    sections = []
    for title, (css_class, literal) in KEYWORD_SECTIONS.items():
        if title in processed: continue
        text = find_keyword_paragraph(soup, css_class, literal)
        if text:
            sections.append({'title': title, 'content': text})
            processed.add(title)
    return sections


def has_content(section):
    return bool(section.get('content') or section.get('subsections'))

def parse_sections(html, boxed_policy=boxed_text.STRICT):
    """Segment cleaned HTML into {'sections', 'keywords', 'images'}.

    Raises EmptyDocumentError when no section carries any content.
    """
    soup = BeautifulSoup(html or '', 'html.parser')
    sections = []; processed = set()

    authors = extract_authors(soup)
    if authors:
        sections.append(authors); processed.add(AUTHORS)
    sections += extract_boxed_text(soup, boxed_policy)
    for sec in extract_titles(soup):
        sections.append(sec); processed.add(sec['title'])

    images = extract_images(soup)
    tables = extract_tables(soup)
    sections += tables
    annotate_paragraphs(soup, images, tables)

    sections += extract_body_sections(soup, processed)
    sections += extract_keyword_sections(soup, processed)

    if not any(has_content(s) for s in sections):
        raise EmptyDocumentError('No valid sections found in the processed HTML')

    keywords = []
    for sec in sections:
        if sec['title'] in (KEYWORDS, PALABRAS_CLAVES):
            keywords += split_keywords(sec['content'])
    logger.info('Segmented %d sections, %d images, %d tables', len(sections), len(images), len(tables))
    return {'sections': sections, 'keywords': keywords, 'images': images}
