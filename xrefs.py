"""In-text cross references to figures and tables."""
import re

FIG_WORDS = ('Figura', 'Figure')
TABLE_WORDS = ('Tabla', 'Table')


def _linker(words, num, ref_type, rid):
    # already-linked mentions are followed by </xref> and are left alone
    pat = re.compile(rf'\b({"|".join(words)})\s*{num}\b(?!</xref>)')
    return pat, rf'<xref ref-type="{ref_type}" rid="{rid}">\1 {num}</xref>'

def table_number(table):
    return str(table.get('id') or '').rsplit('-', 1)[-1]

def link_figures(html, images):
    for n, img in enumerate(images, 1):
        pat, repl = _linker(FIG_WORDS, n, 'fig', img['id'])
        html = pat.sub(repl, html)
    return html

def link_tables(html, tables):
    for tbl in tables:
        num = table_number(tbl)
        pat, repl = _linker(TABLE_WORDS, num, 'table', tbl['id'])
        html = pat.sub(repl, html)
    return html

def link_refs(html, images, tables):
    """Wrap every "Figura/Figure N" and "Tabla/Table N" mention in an <xref>."""
    return link_tables(link_figures(html, images), tables)
