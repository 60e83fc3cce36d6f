"""Boxed Text tokenizer.

A "Boxed Text" paragraph in the journal template is one run of text holding
four blocks: submission dates, publisher details, citation instructions and a
repository statement. Each block opens with a fixed delimiter; inside the
first two blocks further delimiters start new lines.
"""
import re
import logging
from errors import MalformedBoxedTextError

logger = logging.getLogger(__name__)

STRICT, LENIENT = 'strict', 'lenient'
POLICIES = (STRICT, LENIENT)

ACCEPTED = 'Accepted:'

# (block name, opening delimiter) in document order; the first block opens at offset 0
BLOCKS = (
    ('dates',      None),
    ('publisher',  'Engineering and Applied Sciences'),
    ('citation',   'How to cite this article:'),
    ('repository', 'Articles in journal repositories'),
)

# (pattern, every occurrence); each match starts a new line
LINE_DELIMITERS = {
    'dates': [
        (r'DOI:', True), (r'ISSN-e:', True), (r'Submitted:', True),
        (r'Revised:', True), (r'Accepted:', True),
    ],
    'publisher': [
        (r'University of Guayaquil\..*?Ecuador', False),
        (r'Frequency/Year: \d+', False),
        (r'Web:', False),
        (r'revistas\.ug\.edu\.ec/index\.php/easi', False),
        (r'Email:', False),
        (r'easi-publication\.industrial@ug\.edu\.ec', False),
    ],
}
_EMPTY_BOLD = re.compile(r'<bold>\s*</bold>')


def block_offsets(text):
    """Locate each block's opening delimiter, scanning left to right."""
    acc = text.find(ACCEPTED)
    pos = acc + len(ACCEPTED) if acc >= 0 else 0
    found = [('dates', 0)]
    for name, opener in BLOCKS[1:]:
        i = text.find(opener, pos)
        if i < 0: continue
        found.append((name, i)); pos = i + len(opener)
    return acc >= 0, found

def split_lines(name, block):
    if name == 'publisher':
        block = _EMPTY_BOLD.sub(' ', block)
    for pattern, every in LINE_DELIMITERS.get(name, ()):
        block = re.sub(f'({pattern})', r'\n\1', block, count=0 if every else 1)
    return [line.strip() for line in block.split('\n') if line.strip()]

def tokenize(html, policy=STRICT):
    """Return [(block name, [lines])] for one boxed-text paragraph.

    Under STRICT the paragraph must contain the "Accepted:" marker and the
    repository statement, otherwise MalformedBoxedTextError is raised. Under
    LENIENT whatever blocks were located are returned.
    """
    if policy not in POLICIES:
        raise ValueError(f'unknown boxed text policy: {policy!r}')
    text = (html or '').strip()
    if not text:
        raise MalformedBoxedTextError('empty boxed text paragraph')
    has_accepted, offsets = block_offsets(text)
    if policy == STRICT:
        if not has_accepted:
            raise MalformedBoxedTextError(f'no {ACCEPTED!r} marker in boxed text')
        if offsets[-1][0] != 'repository':
            raise MalformedBoxedTextError('no repository statement in boxed text')

    blocks = []
    for n, (name, start) in enumerate(offsets):
        end = offsets[n + 1][1] if n + 1 < len(offsets) else len(text)
        lines = split_lines(name, text[start:end])
        if lines: blocks.append((name, lines))
    logger.debug('boxed text split into %s', [name for name, _ in blocks])
    return blocks
