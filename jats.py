"""JATS XML builder for the segmented article model.

The journal block, permissions and keyword group are fixed boilerplate for
the EASI journal template; everything else comes from the sections produced
by segmenter.parse_sections.
"""
import re
from html import unescape
from bs4 import BeautifulSoup, NavigableString, Comment

from segmenter import (ARTICLE_TITLE, SECONDARY_TITLE, AUTHORS, BOXED_TEXT, TABLE,
                       ABSTRACT, RESUMEN, KEYWORDS, PALABRAS_CLAVES, FRONT_MATTER,
                       split_keywords)
from xrefs import table_number

JOURNAL = {
    'id':           'EASI: Ingeniería y Ciencias Aplicadas en la Industria',
    'name':         'EASI: Ingeniería y Ciencias Aplicadas en la Industria',
    'issn':         '2953-6634',
    'publisher':    'Universidad de Guayaquil',
    'publisherLoc': 'Guayaquil, Ecuador',
    'licenseUrl':   'http://creativecommons.org/licenses/by/4.0/',
}

XLINK_NS = 'http://www.w3.org/1999/xlink'
INLINE_TAGS = {'bold', 'italic', 'sup', 'sub', 'underline', 'xref'}
XREF_ATTRS = ('ref-type', 'rid')
LIST_TYPES = {'bullet': 'bullet', 'ordered': 'order'}

_SKIP_UNIT = re.compile(r'^<table|^<tr|<tbody|<thead|<img')
_AFF_SPLIT = re.compile(r'(\(\w\)|corresponding\s*author:|autor\s*de\s*correspondencia:)', re.I)
_AFF_MARK = re.compile(r'^\(\w\)$')
_CORRESP = re.compile(r'corresponding\s*author:|autor\s*de\s*correspondencia:', re.I)


def xe(t):
    if not t: return ''
    return str(t).replace('&','&amp;').replace('<','&lt;').replace('>','&gt;').replace('"','&quot;')


# ── INLINE MARKUP ────────────────────────────────────────────
def _render(node):
    if isinstance(node, Comment): return ''
    if isinstance(node, NavigableString): return xe(str(node))
    inner = ''.join(_render(c) for c in node.children)
    if node.name not in INLINE_TAGS: return inner
    attrs = ''
    if node.name == 'xref':
        attrs = ''.join(f' {k}="{xe(node[k])}"' for k in XREF_ATTRS if node.get(k))
    return f'<{node.name}{attrs}>{inner}</{node.name}>'

def inline(fragment):
    """HTML fragment → JATS mixed content; entities decoded, unknown tags unwrapped."""
    soup = BeautifulSoup(fragment or '', 'html.parser')
    return ''.join(_render(c) for c in soup.contents).strip()

def plain(content):
    if isinstance(content, str): return BeautifulSoup(content, 'html.parser').get_text().strip()
    return ' '.join(plain(u) for u in content if isinstance(u, str)).strip()

def split_label(text):
    """'Abstract: body' → ('Abstract:', 'body'), 'Abstract. body' → ('Abstract', 'body')."""
    colon, dot = text.find(': '), text.find('. ')
    if colon >= 0 and (dot < 0 or colon < dot): return text[:colon + 1], text[colon + 2:]
    if dot >= 0: return text[:dot], text[dot + 2:]
    return text, ''

def find(sections, title):
    return next((s for s in sections if s['title'] == title), None)


# ── BODY CONTENT ─────────────────────────────────────────────
def build_list(items, list_type, ind):
    L = [f'{ind}<list list-type="{list_type}">']
    for item in items:
        if item: L.append(f'{ind}  <list-item><p>{item}</p></list-item>')
    L.append(f'{ind}</list>')
    return L

def build_units(units, ind):
    L = []
    for unit in units:
        if isinstance(unit, dict):
            if unit.get('type') == 'list':
                items = [xe(i.get('text')) for i in unit.get('items') or [] if isinstance(i, dict)]
                L += build_list(items, LIST_TYPES.get(unit.get('listType'), 'bullet'), ind)
            continue
        if not isinstance(unit, str): continue
        decoded = unescape(unit)
        if _SKIP_UNIT.search(decoded): continue
        if '<li' in decoded:
            lis = BeautifulSoup(unit, 'html.parser').find_all('li')
            L += build_list([inline(li.decode_contents()) for li in lis], 'bullet', ind)
            continue
        text = inline(unit)
        if text: L.append(f'{ind}<p>{text}</p>')
    return L

def build_table_xml(sec, ind='      '):
    num = table_number(sec)
    rows = sec.get('content') or []
    L = [f'{ind}<table-wrap id="{xe(sec.get("id"))}">',
         f'{ind}  <label>Table {num}</label>',
         f'{ind}  <caption>', f'{ind}    <title>Table {num}</title>', f'{ind}  </caption>',
         f'{ind}  <table>']
    if rows:
        L += [f'{ind}    <thead>', f'{ind}      <tr>']
        L += [f'{ind}        <th>{xe(c)}</th>' for c in rows[0]]
        L += [f'{ind}      </tr>', f'{ind}    </thead>']
        if len(rows) > 1:
            L.append(f'{ind}    <tbody>')
            for row in rows[1:]:
                L.append(f'{ind}      <tr>')
                L += [f'{ind}        <td>{xe(c)}</td>' for c in row]
                L.append(f'{ind}      </tr>')
            L.append(f'{ind}    </tbody>')
    L += [f'{ind}  </table>', f'{ind}</table-wrap>']
    return L

def build_fig_xml(img, n, ind='    '):
    L = [f'{ind}<fig id="{img["id"]}">',
         f'{ind}  <caption>',
         f'{ind}    <label>Figure {n}.</label>',
         f'{ind}    <title>Figure {n}.</title>']
    alt = (img.get('alt') or '').strip()
    if alt and alt != f'Figura {n}':
        L.append(f'{ind}    <p>{xe(alt)}</p>')
    L += [f'{ind}  </caption>',
          f'{ind}  <graphic mimetype="image" mime-subtype="png" xlink:href="media/image{n:03d}.png"/>',
          f'{ind}</fig>']
    return L

def build_section(sec):
    L = ['    <sec>', f'      <title>{xe(sec["title"])}</title>']
    if sec['title'] == TABLE:
        L += build_table_xml(sec)
        return L + ['    </sec>']
    content = sec.get('content') or []
    if isinstance(content, str): content = [content]
    L += build_units(content, '      ')
    for sub in sec.get('subsections') or []:
        if sub.get('title') in FRONT_MATTER: continue
        if sub.get('isTitle5'):
            L.append(f'      <p><italic><bold>{xe(sub["title"])}</bold></italic></p>')
            L += build_units(sub.get('content', []), '      ')
        else:
            L += ['      <sec>', f'        <title>{xe(sub["title"])}</title>']
            L += build_units(sub.get('content', []), '        ')
            L.append('      </sec>')
    return L + ['    </sec>']


# ── ABSTRACT BLOCK ───────────────────────────────────────────
def build_authors(sec):
    items = [i for i in sec.get('content') or [] if isinstance(i, dict)]
    names = [i.get('text') for i in items if i.get('type') == 'title' and i.get('text')]
    paras = []
    for item in items:
        if item.get('type') != 'affiliation': continue
        cur = ''
        for part in filter(None, _AFF_SPLIT.split(item['text'])):
            if _AFF_MARK.match(part):
                if cur.strip(): paras.append(cur.strip())
                cur = f'<sup>{xe(part)}</sup> '
            elif _CORRESP.match(part):
                if cur.strip(): paras.append(cur.strip())
                cur = xe(part.strip()) + ' '
            else:
                cur += xe(part.strip()) + ' '
        if cur.strip(): paras.append(cur.strip())
    L = ['        <sec>', f'          <title>{xe("; ".join(names))}</title>']
    L += [f'          <p>{p}</p>' for p in paras]
    return L + ['        </sec>']

def build_boxed_text(sec):
    L = ['        <sec>', '          <boxed-text>']
    for line in sec.get('content') or []:
        if not isinstance(line, str): continue
        text = inline(line.strip())
        if text: L.append(f'            <p>{text}</p>')
    return L + ['          </boxed-text>', '        </sec>']

def build_summary(sec):
    title, body = split_label(plain(sec['content']))
    return ['        <sec>', f'          <title>{xe(title)}</title>',
            f'          <p>{xe(body)}</p>', '        </sec>']

def build_keywords(sec):
    text = plain(sec['content'])
    label = text.partition(': ')[0]
    L = ['        <sec>', f'          <title>{xe(label)}:</title>']
    L += [f'          <p>{xe(k)}</p>' for k in split_keywords(text)]
    return L + ['        </sec>']

def build_abstract(sections):
    L = ['      <abstract abstract-type="section">']
    sec = find(sections, SECONDARY_TITLE)
    if sec is not None: L.append(f'        <title>{xe(plain(sec["content"]))}</title>')
    sec = find(sections, AUTHORS)
    if sec is not None: L += build_authors(sec)
    for sec in sections:
        if sec['title'] == BOXED_TEXT: L += build_boxed_text(sec)
    for title, builder in ((ABSTRACT, build_summary), (KEYWORDS, build_keywords),
                           (RESUMEN, build_summary), (PALABRAS_CLAVES, build_keywords)):
        sec = find(sections, title)
        if sec is not None: L += builder(sec)
    return L + ['      </abstract>']


# ── XML BUILDER ──────────────────────────────────────────────
def build_xml(model, jm=None):
    """Serialise {'sections', 'images', ...} to a JATS <article> string. Never raises."""
    jm = {**JOURNAL, **(jm or {})}
    sections = model.get('sections') or []
    images = model.get('images') or []

    L = ['<?xml version="1.0" encoding="UTF-8"?>',
         f'<article xmlns:xlink="{XLINK_NS}" article-type="research" dtd-version="1.3"'
         ' specific-use="production" xml:lang="en">',
         '  <front>',
         '    <journal-meta>',
         f'      <journal-id journal-id-type="publisher">{xe(jm["id"])}</journal-id>',
         f'      <issn>{xe(jm["issn"])}</issn>',
         '      <journal-title-group>',
         f'        <journal-title>{xe(jm["name"])}</journal-title>',
         '      </journal-title-group>',
         '      <publisher>',
         f'        <publisher-name>{xe(jm["publisher"])}</publisher-name>',
         f'        <publisher-loc>{xe(jm["publisherLoc"])}</publisher-loc>',
         '      </publisher>',
         '    </journal-meta>',
         '    <article-meta>',
         '      <article-categories>',
         '        <subj-group>'] + ['          <subject> </subject>'] * 3 + [
         '        </subj-group>',
         '      </article-categories>',
         '      <title-group>']
    title = find(sections, ARTICLE_TITLE)
    if title is not None:
        L.append(f'        <article-title>{xe(plain(title["content"]))}</article-title>')
    lic = xe(jm['licenseUrl'])
    L += ['      </title-group>',
          '      <volume> </volume>',
          '      <issue> </issue>',
          '      <permissions>',
          '        <copyright-statement>© </copyright-statement>',
          '        <copyright-year> </copyright-year>',
          '        <copyright-holder> </copyright-holder>',
          f'        <license xlink:href="{lic}">',
          '          <license-p>This article is distributed under the terms of the '
          f'<ext-link ext-link-type="uri" xlink:href="{lic}">Creative Commons Attribution License</ext-link>'
          ', which permits unrestricted use and redistribution provided that the original'
          ' author and source are credited.</license-p>',
          '        </license>',
          '      </permissions>']
    L += build_abstract(sections)
    L += ['      <kwd-group kwd-group-type="author-keywords">',
          '        <title>Keywords</title>'] + ['        <kwd> </kwd>'] * 3 + [
          '      </kwd-group>',
          '    </article-meta>',
          '  </front>',
          '  <body>']
    for sec in sections:
        if sec['title'] not in FRONT_MATTER: L += build_section(sec)
    for n, img in enumerate(images, 1):
        L += build_fig_xml(img, n)
    L += ['  </body>', '  <back/>', '</article>']
    return '\n'.join(L)

def post_process(xml):
    """Drop empty paragraphs/emphasis and blank lines."""
    xml = re.sub(r'<p>\s*</p>', '', xml)
    xml = re.sub(r'<bold>\s*</bold>', '', xml)
    xml = re.sub(r'<italic>\s*</italic>', '', xml)
    return '\n'.join(l for l in xml.split('\n') if l.strip())
