#!/usr/bin/env python3
"""DOCX → cleaned HTML + JATS XML for the EASI research-article template.

Pipeline:
  - mammoth converts the manuscript with the template style map, writing
    embedded images to media/image001.png, image002.png, ...
  - cleaner.clean_html normalises the HTML
  - segmenter.parse_sections builds the section model (with figure/table xrefs)
  - jats.build_xml + jats.post_process emit the article XML
"""
import os, sys, logging, zipfile
import mammoth
from docx import Document

import boxed_text
from cleaner import clean_html
from errors import EmptyDocumentError, MissingImageDataError, UnsupportedTemplateError
from jats import build_xml, post_process
from segmenter import parse_sections, AUTHORS, TABLE

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = 'research-article'
TEMPLATES = {'research-article': 'Research Article'}

# Word paragraph styles of the journal template → HTML the segmenter understands
STYLE_MAP = """
p[style-name='Título 1'] => h1:fresh
p[style-name='Título 2'] => h2:fresh
p[style-name='Título 3'] => h3:fresh
p[style-name='Título 4'] => h4:fresh
p[style-name='Título 5'] => h5:fresh
p[style-name='Autores'] => p.authors:fresh
p[style-name='Afiliaciones'] => p.affiliations:fresh
p[style-name='Boxed Text'] => p.boxedtext:fresh
p[style-name='Abstract'] => p.abstract:fresh
p[style-name='Resumen'] => p.resumen:fresh
p[style-name='Keywords'] => p.keywords:fresh
p[style-name='Palabras claves'] => p.palabrasclaves:fresh
"""
TEMPLATE_STYLES = ('Título 1', 'Título 2', 'Título 3', 'Título 4', 'Título 5', 'Autores',
                   'Afiliaciones', 'Boxed Text', 'Abstract', 'Resumen', 'Keywords', 'Palabras claves')
MEDIA_DIR = 'media'


def check_template(template):
    if template not in TEMPLATES:
        raise UnsupportedTemplateError(template)

# ── DOCX → HTML ──────────────────────────────────────────────
def template_styles(path):
    """Template paragraph styles actually used in the manuscript."""
    doc = Document(path)
    used = {p.style.name for p in doc.paragraphs if p.style is not None}
    return used & set(TEMPLATE_STYLES)

def _read_image(image, n):
    try:
        with image.open() as src:
            data = src.read()
    except (OSError, KeyError) as e:
        raise MissingImageDataError(f'image {n}: {e}') from e
    if not data:
        raise MissingImageDataError(f'image {n} is empty')
    return data

def image_writer(media_dir):
    """mammoth image callback; files are numbered image001.png, image002.png, ..."""
    ctr = [0]
    def write(image):
        n = ctr[0] + 1
        try:
            data = _read_image(image, n)
        except MissingImageDataError as e:
            logger.warning('Skipping embedded image: %s', e)
            return {'src': 'undefined'}
        name = f'image{n:03d}.png'
        os.makedirs(media_dir, exist_ok=True)
        with open(os.path.join(media_dir, name), 'wb') as out:
            out.write(data)
        ctr[0] = n
        return {'src': f'{MEDIA_DIR}/{name}'}
    return write

def docx_to_html(path, out_dir):
    media_dir = os.path.join(out_dir, MEDIA_DIR)
    with open(path, 'rb') as f:
        result = mammoth.convert_to_html(f, style_map=STYLE_MAP,
                                         convert_image=mammoth.images.img_element(image_writer(media_dir)))
    for msg in result.messages:
        logger.warning('mammoth: %s', msg.message)
    return result.value

def zip_images(media_dir, zip_path):
    """Pack extracted images at the archive root. None when there are none."""
    if not os.path.isdir(media_dir): return None
    names = sorted(n for n in os.listdir(media_dir) if os.path.isfile(os.path.join(media_dir, n)))
    if not names: return None
    with zipfile.ZipFile(zip_path, 'w', zipfile.ZIP_DEFLATED) as zf:
        for n in names:
            zf.write(os.path.join(media_dir, n), arcname=n)
    return zip_path

# ── PIPELINE ─────────────────────────────────────────────────
def convert_html(raw_html, template=DEFAULT_TEMPLATE, boxed_policy=boxed_text.STRICT, jm=None):
    """Run the core pipeline on converter HTML.

    Returns {'html', 'xml', 'sections', 'keywords', 'images'}. Raises
    UnsupportedTemplateError before doing any work and EmptyDocumentError when
    nothing could be segmented.
    """
    check_template(template)
    html = clean_html(raw_html)
    model = parse_sections(html, boxed_policy)
    xml = post_process(build_xml(model, jm))
    return {'html': html, 'xml': xml, **model}

def stats(result):
    sections = result.get('sections', [])
    authors = next((s for s in sections if s['title'] == AUTHORS), None)
    return {
        'authors':  sum(1 for i in authors['content'] if i['type'] == 'title') if authors else 0,
        'sections': len(sections),
        'tables':   sum(1 for s in sections if s['title'] == TABLE),
        'figures':  len(result.get('images', [])),
        'keywords': len(result.get('keywords', [])),
        'size':     round(len(result.get('xml', '')) / 1024, 1),
    }

def convert_docx(path, out_dir, template=DEFAULT_TEMPLATE, boxed_policy=boxed_text.STRICT, jm=None):
    """Convert a .docx file, writing <name>.html, <name>.xml and media/ into out_dir."""
    check_template(template)
    name = os.path.splitext(os.path.basename(path))[0]
    os.makedirs(out_dir, exist_ok=True)

    styles = template_styles(path)
    if not styles:
        logger.warning('%s uses none of the template styles; headings will not be recognised', path)
    else:
        logger.debug('Template styles in use: %s', ', '.join(sorted(styles)))

    result = convert_html(docx_to_html(path, out_dir), template, boxed_policy, jm)
    html_path = os.path.join(out_dir, f'{name}.html')
    xml_path = os.path.join(out_dir, f'{name}.xml')
    with open(html_path, 'w', encoding='utf-8') as f: f.write(result['html'])
    with open(xml_path, 'w', encoding='utf-8') as f: f.write(result['xml'])

    media_dir = os.path.join(out_dir, MEDIA_DIR)
    return {'html_path': html_path, 'xml_path': xml_path,
            'media_dir': media_dir if os.path.isdir(media_dir) else None,
            'stats': stats(result), 'result': result}

# ── CLI ──────────────────────────────────────────────────────
def main(argv=None):
    import argparse
    ap = argparse.ArgumentParser(description='DOCX → cleaned HTML + JATS XML')
    ap.add_argument('input')
    ap.add_argument('-o', '--output-dir', help='defaults to the input file directory')
    ap.add_argument('--template', default=DEFAULT_TEMPLATE)
    ap.add_argument('--boxed-policy', default=boxed_text.STRICT, choices=boxed_text.POLICIES)
    ap.add_argument('--zip', action='store_true', help='also pack extracted images into <name>_images.zip')
    ap.add_argument('-v', '--verbose', action='store_true')
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    out_dir = args.output_dir or os.path.dirname(os.path.abspath(args.input))

    print(f"📄 Parsing: {args.input}", file=sys.stderr)
    try:
        res = convert_docx(args.input, out_dir, args.template, args.boxed_policy)
    except UnsupportedTemplateError as e:
        print(f"❌ {e}", file=sys.stderr); return 2
    except EmptyDocumentError as e:
        print(f"❌ {e}", file=sys.stderr); return 1

    if args.zip and res['media_dir']:
        name = os.path.splitext(os.path.basename(args.input))[0]
        zp = zip_images(res['media_dir'], os.path.join(out_dir, f'{name}_images.zip'))
        if zp: print(f"🖼  {zp}", file=sys.stderr)
    s = res['stats']
    print(f"\n✅ {res['xml_path']} ({s['size']} KB | {s['sections']} sections, "
          f"{s['tables']} tables, {s['figures']} figures)", file=sys.stderr)
    print(f"✅ {res['html_path']}", file=sys.stderr)
    return 0

if __name__ == '__main__':
    sys.exit(main())
