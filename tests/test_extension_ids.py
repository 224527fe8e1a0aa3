import sys
import os
import io
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from extension_ids import (
    collect_extension_ids,
    extract_extension_id,
    is_valid_extension_id,
    read_input,
)

UBLOCK = 'cjpalhdlnbpafiamejdnhcphjbkeiagm'
OTHER = 'odfafepnkmbhccpbejgmiehpchacaeak'


def test_valid_ids():
    assert is_valid_extension_id(UBLOCK)
    assert not is_valid_extension_id(UBLOCK[:-1])
    assert not is_valid_extension_id(UBLOCK + 'a')
    assert not is_valid_extension_id(UBLOCK.upper())
    assert not is_valid_extension_id('')
    assert not is_valid_extension_id(None)


def test_extract_from_store_url():
    url = f'https://chromewebstore.google.com/detail/ublock-origin/{UBLOCK}?hl=en'
    assert extract_extension_id(url) == UBLOCK
    assert extract_extension_id(UBLOCK) == UBLOCK
    assert extract_extension_id('  ' + UBLOCK + '  ') == UBLOCK


def test_extract_rejects_short_input():
    assert extract_extension_id('abc') is None
    assert extract_extension_id('https://example.com/detail/12345') is None
    assert extract_extension_id('') is None


def test_read_input_stops_at_blank_line(capsys):
    stream = io.StringIO(f'{UBLOCK}\n{OTHER}  \n\nignored\n')
    assert read_input(stream) == [UBLOCK, OTHER]
    assert 'Enter list of extensions' in capsys.readouterr().out


def test_read_input_eof_without_prompt(capsys):
    stream = io.StringIO(UBLOCK)
    assert read_input(stream, prompt=False) == [UBLOCK]
    assert capsys.readouterr().out == ''


def test_collect_keeps_order_and_dedupes():
    values = [
        OTHER,
        'not an id',
        f'https://chrome.google.com/webstore/detail/{UBLOCK}',
        UBLOCK,
    ]
    ids, skipped = collect_extension_ids(values)
    assert ids == [OTHER, UBLOCK]
    assert skipped == ['not an id']
