"""
Extension ID input
Validates Chrome extension IDs and reads them from the command line or stdin
"""

import re
import sys

# Real IDs only use a-p; the looser class also finds IDs inside store URLs
EXTENSION_ID_RE = re.compile(r'[a-z]{32}')

INPUT_PROMPT = "\nEnter list of extensions' URLs/IDs, then hit enter. Lines are separated with \\n:\n\n"


def is_valid_extension_id(text):
    """True when text is exactly one 32-letter lowercase ID"""
    return bool(EXTENSION_ID_RE.fullmatch(text or ''))


def extract_extension_id(text):
    """
    Pull the extension ID out of a raw ID or a store URL

    Args:
        text (str): e.g. "cjpalhdlnbpafiamejdnhcphjbkeiagm" or
            "https://chromewebstore.google.com/detail/ublock/cjpal..."

    Returns:
        str: The first 32-letter lowercase run, or None
    """
    match = EXTENSION_ID_RE.search(text or '')
    return match.group(0) if match else None


def read_input(stream=None, prompt=True):
    """Read lines until the first empty line or EOF"""
    stream = stream if stream is not None else sys.stdin

    if prompt:
        print(INPUT_PROMPT, end='')

    lines = []
    for line in stream:
        line = line.rstrip()
        if not line:
            break
        lines.append(line)

    return lines


def collect_extension_ids(values):
    """
    Turn raw inputs into a de-duplicated list of IDs

    Args:
        values (list): Raw IDs or URLs

    Returns:
        tuple: (ids, skipped) where skipped holds inputs with no valid ID
    """
    ids = []
    skipped = []
    seen = set()

    for value in values:
        extension_id = extract_extension_id(value)
        if extension_id is None:
            skipped.append(value)
            continue
        if extension_id in seen:
            continue
        seen.add(extension_id)
        ids.append(extension_id)

    return ids, skipped
