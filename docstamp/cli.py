import dataclasses
import logging
import sys
from contextlib import contextmanager
from enum import Enum, auto

import click

from docstamp import __version__
from docstamp.config import (
    CLIConfig,
    LogConfig,
    StdLogOutput,
    parse_cli_config,
    parse_logging_config,
)
from docstamp.image_utils.blending import BlendMode
from docstamp.image_utils.config_utils import ConfigurationError
from docstamp.image_utils.images import transparency_to_opacity
from docstamp.image_utils.layout import (
    CanvasSpec,
    Dimensions,
    LayoutError,
    PlacementMode,
    StampPosition,
)
from docstamp.image_utils.misc import StampingError, rd
from docstamp.stamp import (
    DEFAULT_STAMP_STYLE,
    PdfExportSettings,
    StampStyle,
    stamp_file,
)

__all__ = ['cli']


logger = logging.getLogger(__name__)


class NoStackTraceFormatter(logging.Formatter):
    def formatException(self, ei) -> str:
        return ""


LOG_FORMAT_STRING = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def logging_setup(log_configs, verbose: bool):
    log_config: LogConfig
    for module, log_config in log_configs.items():
        cur_logger = logging.getLogger(module)
        cur_logger.setLevel(log_config.level)
        if isinstance(log_config.output, StdLogOutput):
            if log_config.output == StdLogOutput.STDOUT:
                handler = logging.StreamHandler(sys.stdout)
            else:
                handler = logging.StreamHandler()
            # when logging to the console, don't output stack traces
            # unless in verbose mode
            if verbose:
                formatter = logging.Formatter(LOG_FORMAT_STRING)
            else:
                formatter = NoStackTraceFormatter(LOG_FORMAT_STRING)
        else:
            handler = logging.FileHandler(log_config.output)
            formatter = logging.Formatter(LOG_FORMAT_STRING)
        handler.setFormatter(formatter)
        cur_logger.addHandler(handler)


@contextmanager
def docstamp_exception_manager():
    msg = exception = None
    try:
        yield
    except click.ClickException:
        raise
    except ConfigurationError as e:
        exception = e
        msg = f"Configuration problem: {str(e)}"
    except LayoutError as e:
        exception = e
        msg = f"Error raised while computing stamp layout: {e.msg}"
    except StampingError as e:
        exception = e
        msg = f"Error raised while stamping: {e.msg}"
    except OSError as e:
        exception = e
        msg = f"Failed to read or write file: {str(e)}"
    except Exception as e:
        exception = e
        msg = "Generic processing error."

    if exception is not None:
        logger.error(msg, exc_info=exception)
        raise click.ClickException(msg)


DEFAULT_CONFIG_FILE = 'docstamp.yml'


class Ctx(Enum):
    CLI_CONFIG = auto()


@click.group()
@click.version_option(prog_name='docstamp', version=__version__)
@click.option('--config',
              help=(
                  'YAML file to load configuration from'
                  f'[default: {DEFAULT_CONFIG_FILE}]'
              ), required=False, type=click.File('r'))
@click.option('--verbose', help='Run in verbose mode', required=False,
              default=False, type=bool, is_flag=True)
@click.pass_context
def cli(ctx, config, verbose):
    config_text = None
    if config is None:
        try:
            with open(DEFAULT_CONFIG_FILE, 'r') as f:
                config_text = f.read()
            config = DEFAULT_CONFIG_FILE
        except FileNotFoundError:
            pass
        except IOError as e:
            raise click.ClickException(
                f"Failed to read {DEFAULT_CONFIG_FILE}: {str(e)}"
            )
    else:
        try:
            config_text = config.read()
        except IOError as e:
            raise click.ClickException(
                f"Failed to read configuration: {str(e)}",
            )

    ctx.ensure_object(dict)
    try:
        if config_text is not None:
            ctx.obj[Ctx.CLI_CONFIG] = cfg = parse_cli_config(config_text)
            log_config = cfg.log_config
        else:
            # grab the default
            log_config = parse_logging_config({})
    except ConfigurationError as e:
        raise click.ClickException(f"Configuration problem: {str(e)}")

    if verbose:
        # override the root logger's logging level, but preserve the output
        root_logger_config = log_config[None]
        log_config[None] = LogConfig(
            level=logging.DEBUG, output=root_logger_config.output
        )
    else:
        log_output = log_config[None].output
        if 'PIL' not in log_config:
            # Pillow's plugins are chatty at DEBUG/INFO level
            log_config['PIL'] = LogConfig(
                level=logging.WARNING, output=log_output
            )

    logging_setup(log_config, verbose)

    if verbose:
        logging.debug("Running with --verbose")
    if config_text is not None:
        logging.debug(f'Finished reading configuration from {config}.')
    else:
        logging.debug('There was no configuration to parse.')


readable_file = click.Path(exists=True, readable=True, dir_okay=False)

position_choice = click.Choice(
    [p.name.lower().replace('_', '-') for p in StampPosition],
    case_sensitive=False
)

blend_mode_choice = click.Choice(
    [m.name.lower() for m in BlendMode], case_sensitive=False
)


def _select_style(ctx, style_name) -> StampStyle:
    try:
        cli_config: CLIConfig = ctx.obj[Ctx.CLI_CONFIG]
    except KeyError:
        if not style_name:
            return DEFAULT_STAMP_STYLE
        raise click.ClickException(
            "Using stamp styles requires a configuration file "
            f"({DEFAULT_CONFIG_FILE} by default)."
        )
    try:
        return cli_config.get_stamp_style(style_name)
    except ConfigurationError as e:
        msg = (
            "Configuration problem. Are you sure that the style "
            f"'{style_name}' is properly defined in the configuration file?"
        )
        logger.error(msg, exc_info=e)
        raise click.ClickException(msg)


def _placement_override(position, x, y):
    if (x is None) != (y is None):
        raise click.ClickException("--x and --y must be specified together.")
    if x is not None:
        if position is not None and position.lower() != 'custom':
            raise click.ClickException(
                "--x and --y cannot be combined with a named --position."
            )
        return PlacementMode.custom(x, y)
    elif position is not None:
        if position.lower() == 'custom':
            raise click.ClickException(
                "Custom positions require --x and --y."
            )
        return PlacementMode(StampPosition.from_config(position))
    return None


def _apply_overrides(style: StampStyle, *, position=None, x=None, y=None,
                     scale=None, opacity=None, transparency=None,
                     blend_mode=None, margin=None) -> StampStyle:
    overrides = {}
    placement = _placement_override(position, x, y)
    if placement is not None:
        overrides['placement'] = placement
    if scale is not None:
        overrides['scale_percent'] = scale
    if opacity is not None and transparency is not None:
        raise click.ClickException(
            "--opacity and --transparency are mutually exclusive."
        )
    elif opacity is not None:
        overrides['opacity_percent'] = opacity
    elif transparency is not None:
        overrides['opacity_percent'] = transparency_to_opacity(transparency)
    if blend_mode is not None:
        overrides['blend_mode'] = BlendMode.from_config(blend_mode)
    if margin is not None:
        overrides['margin'] = margin
    return dataclasses.replace(style, **overrides) if overrides else style


def _style_options(f):
    options = [
        click.option(
            '--style-name', help='stamp style name from the configuration',
            required=False, type=str
        ),
        click.option(
            '--position', help='anchor point for the stamp',
            required=False, type=position_choice
        ),
        click.option(
            '--x', help='horizontal coordinate for custom placement',
            required=False, type=float
        ),
        click.option(
            '--y', help='vertical coordinate for custom placement',
            required=False, type=float
        ),
        click.option(
            '--scale', help='stamp scale, as a percentage in (0, 100]',
            required=False, type=float
        ),
        click.option(
            '--margin', help='distance between the stamp and the page edges',
            required=False, type=float
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@cli.command(help='stamp a document and export it as an image or PDF',
             name='stamp')
@click.argument('infile', type=readable_file)
@click.argument('stampfile', type=readable_file)
@click.argument('outfile', type=click.Path(writable=True, dir_okay=False))
@_style_options
@click.option(
    '--opacity', help='stamp opacity, as a percentage in [0, 100]',
    required=False, type=float
)
@click.option(
    '--transparency', help='stamp transparency, as a percentage in [0, 100]',
    required=False, type=float
)
@click.option(
    '--blend-mode', help='blend mode used to apply the stamp',
    required=False, type=blend_mode_choice
)
@click.option(
    '--page', help='page on which the stamp should be applied',
    required=False, type=int, default=1, show_default=True
)
@click.pass_context
def stamp(ctx, infile, outfile, stampfile, style_name, position, x, y, scale,
          margin, opacity, transparency, blend_mode, page):
    with docstamp_exception_manager():
        style = _apply_overrides(
            _select_style(ctx, style_name), position=position, x=x, y=y,
            scale=scale, opacity=opacity, transparency=transparency,
            blend_mode=blend_mode, margin=margin
        )
        cli_config: CLIConfig = ctx.obj.get(Ctx.CLI_CONFIG, None)
        export_settings = (
            cli_config.pdf_export if cli_config is not None
            else PdfExportSettings()
        )
        stamp_file(
            infile, stampfile, outfile, style, page_number=page,
            export_settings=export_settings
        )


@cli.command(help='compute where a stamp goes on a page', name='place')
@click.argument('page_width', type=float)
@click.argument('page_height', type=float)
@click.argument('stamp_width', type=float)
@click.argument('stamp_height', type=float)
@_style_options
@click.option(
    '--origin', help='corner of the page holding the coordinate origin',
    type=click.Choice(['top-left', 'bottom-left'], case_sensitive=False),
    default='bottom-left', show_default=True
)
@click.pass_context
def place(ctx, page_width, page_height, stamp_width, stamp_height,
          style_name, position, x, y, scale, margin, origin):
    with docstamp_exception_manager():
        style = _apply_overrides(
            _select_style(ctx, style_name), position=position, x=x, y=y,
            scale=scale, margin=margin
        )
        canvas = CanvasSpec(
            Dimensions(page_width, page_height),
            origin_top_left=origin.lower() == 'top-left',
            margin=style.margin
        )
        result = style.place(canvas, Dimensions(stamp_width, stamp_height))
        click.echo(
            ' '.join(
                '%g' % rd(v) for v in
                (result.x, result.y, result.width, result.height)
            )
        )
