import logging

import pytest
from click.testing import CliRunner
from PIL import Image

from docstamp import __version__
from docstamp.cli import cli

from .samples import *

INPUT_PATH = 'input.png'
STAMP_PATH = 'stamp.png'


@pytest.fixture(scope="function", autouse=True)
def restore_logging():
    loggers = [logging.getLogger(), logging.getLogger('PIL')]
    saved = [(lg, list(lg.handlers), lg.level) for lg in loggers]
    yield
    for lg, handlers, level in saved:
        lg.handlers = handlers
        lg.setLevel(level)


@pytest.fixture(scope="function")
def cli_runner():
    runner = CliRunner()
    with runner.isolated_filesystem():
        document_raster().save(INPUT_PATH)
        solid_stamp().save(STAMP_PATH)
        yield runner


def _write_config(config_string):
    with open('docstamp.yml', 'w') as outf:
        outf.write(config_string)


def test_cli_version(cli_runner):
    result = cli_runner.invoke(cli, ['--version'])
    assert result.exit_code == 0
    assert __version__ in result.output


@pytest.mark.parametrize('args,expected', [
    (['800', '1000', '200', '100', '--position', 'bottom-right',
      '--scale', '30', '--origin', 'top-left'], '690 920 60 30'),
    (['612', '792', '200', '100', '--position', 'top-left', '--scale', '30'],
     '50 712 60 30'),
    (['612', '792', '200', '100', '--position', 'top-left', '--scale', '30',
      '--origin', 'top-left'], '50 50 60 30'),
    (['1000', '800', '200', '100', '--position', 'center'],
     '400 350 200 100'),
    (['100', '100', '150', '150', '--position', 'center'],
     '-25 -25 150 150'),
    (['612', '792', '200', '100', '--x', '12.5', '--y', '700',
      '--scale', '50'], '12.5 700 100 50'),
    (['612', '792', '200', '100', '--position', 'bottom-left',
      '--margin', '10'], '10 10 200 100'),
    # default style: bottom right, full size
    (['612', '792', '200', '100'], '362 50 200 100'),
])
def test_cli_place(cli_runner, args, expected):
    result = cli_runner.invoke(cli, ['place', *args])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == expected


def test_cli_place_verbose(cli_runner):
    result = cli_runner.invoke(
        cli, ['--verbose', 'place', '612', '792', '200', '100']
    )
    assert result.exit_code == 0, result.output
    assert result.output.strip().endswith('362 50 200 100')


def test_cli_place_with_style(cli_runner):
    _write_config("""
    stamp-styles:
        seal:
            placement: top-right
            scale-percent: 50
            margin: 20
    """)
    result = cli_runner.invoke(
        cli, ['place', '--style-name', 'seal', '612', '792', '200', '100']
    )
    assert result.exit_code == 0, result.output
    assert result.output.strip() == '492 722 100 50'


def test_cli_place_with_default_style(cli_runner):
    _write_config("""
    stamp-styles:
        seal:
            placement: top-right
            scale-percent: 50
    default-stamp-style: seal
    """)
    result = cli_runner.invoke(
        cli, ['place', '--scale', '100', '612', '792', '200', '100']
    )
    assert result.exit_code == 0, result.output
    assert result.output.strip() == '362 642 200 100'


def test_cli_explicit_config(cli_runner):
    with open('other.yml', 'w') as outf:
        outf.write("""
        stamp-styles:
            default:
                placement: bottom-left
        """)
    result = cli_runner.invoke(
        cli, ['--config', 'other.yml', 'place', '612', '792', '200', '100']
    )
    assert result.exit_code == 0, result.output
    assert result.output.strip() == '50 50 200 100'


@pytest.mark.parametrize('args,message', [
    (['612', '792', '200', '100', '--scale', '0'], 'stamp layout'),
    (['612', '792', '200', '100', '--scale', '101'], 'stamp layout'),
    (['0', '792', '200', '100'], 'stamp layout'),
    (['612', '792', '200', '100', '--x', '10'], 'together'),
    (['612', '792', '200', '100', '--x', '10', '--y', '10',
      '--position', 'center'], 'named --position'),
    (['612', '792', '200', '100', '--position', 'custom'], '--x and --y'),
    (['612', '792', '200', '100', '--style-name', 'seal'],
     'configuration file'),
])
def test_cli_place_errors(cli_runner, args, message):
    result = cli_runner.invoke(cli, ['place', *args])
    assert result.exit_code == 1
    assert message in result.output


def test_cli_undefined_style(cli_runner):
    _write_config("""
    stamp-styles:
        seal:
            placement: top-right
    """)
    result = cli_runner.invoke(
        cli, ['place', '--style-name', 'stamp', '612', '792', '200', '100']
    )
    assert result.exit_code == 1
    assert "'stamp'" in result.output


def test_cli_bad_config(cli_runner):
    _write_config("stamp-styles: 5")
    result = cli_runner.invoke(cli, ['place', '612', '792', '200', '100'])
    assert result.exit_code == 1
    assert 'Configuration problem' in result.output


def test_cli_stamp_png(cli_runner):
    result = cli_runner.invoke(
        cli, ['stamp', INPUT_PATH, STAMP_PATH, 'output.png',
              '--position', 'top-left', '--scale', '50']
    )
    assert result.exit_code == 0, result.output
    with Image.open('output.png') as img:
        assert img.size == (DOC_WIDTH, DOC_HEIGHT)
        assert img.getpixel((50, 50)) == STAMP_COLOUR
        assert img.getpixel((149, 99)) == STAMP_COLOUR
        assert img.getpixel((150, 100)) != STAMP_COLOUR


def test_cli_stamp_transparency(cli_runner):
    Image.new('RGB', (100, 100), (255, 255, 255)).save('white.png')
    Image.new('RGBA', (100, 100), (0, 0, 0, 255)).save('black.png')
    result = cli_runner.invoke(
        cli, ['stamp', 'white.png', 'black.png', 'output.png',
              '--position', 'center', '--transparency', '100']
    )
    assert result.exit_code == 0, result.output
    with Image.open('output.png') as img:
        assert img.getpixel((50, 50)) == (255, 255, 255)


def test_cli_stamp_blend_mode(cli_runner):
    Image.new('RGB', (100, 100), (255, 0, 255)).save('magenta.png')
    result = cli_runner.invoke(
        cli, ['stamp', 'magenta.png', STAMP_PATH, 'output.png',
              '--x', '0', '--y', '0', '--scale', '10',
              '--blend-mode', 'multiply']
    )
    assert result.exit_code == 0, result.output
    with Image.open('output.png') as img:
        assert img.getpixel((5, 5)) == (200, 0, 40)
        assert img.getpixel((50, 50)) == (255, 0, 255)


def test_cli_stamp_pdf(cli_runner):
    _write_config("""
    pdf-export:
        page-size: letter
        dpi: 100
    """)
    result = cli_runner.invoke(
        cli, ['stamp', INPUT_PATH, STAMP_PATH, 'output.pdf',
              '--opacity', '50']
    )
    assert result.exit_code == 0, result.output
    with open('output.pdf', 'rb') as inf:
        assert inf.read(4) == b'%PDF'


@pytest.mark.parametrize('args,message', [
    (['--opacity', '50', '--transparency', '20'], 'mutually exclusive'),
    (['--opacity', '150'], 'while stamping'),
    (['--transparency', '-1'], 'while stamping'),
    (['--page', '0'], 'while stamping'),
])
def test_cli_stamp_errors(cli_runner, args, message):
    result = cli_runner.invoke(
        cli, ['stamp', INPUT_PATH, STAMP_PATH, 'output.png', *args]
    )
    assert result.exit_code == 1
    assert message in result.output


def test_cli_stamp_unreadable_document(cli_runner):
    with open('garbage.png', 'wb') as outf:
        outf.write(b'this is not an image')
    result = cli_runner.invoke(
        cli, ['stamp', 'garbage.png', STAMP_PATH, 'output.png']
    )
    assert result.exit_code == 1
    assert 'Failed to read or write file' in result.output


def test_cli_stamp_missing_input(cli_runner):
    result = cli_runner.invoke(
        cli, ['stamp', 'nonexistent.png', STAMP_PATH, 'output.png']
    )
    assert result.exit_code == 2


def test_cli_stamp_bad_background(cli_runner):
    _write_config("""
    pdf-export:
        background: notacolour
    """)
    result = cli_runner.invoke(
        cli, ['stamp', INPUT_PATH, STAMP_PATH, 'output.pdf']
    )
    assert result.exit_code == 1
    assert 'Configuration problem' in result.output
    assert 'notacolour' in result.output
