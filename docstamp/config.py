import enum
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

import yaml

from docstamp.image_utils.config_utils import ConfigurationError
from docstamp.image_utils.misc import get_and_apply
from docstamp.stamp import PdfExportSettings, StampStyle


class StdLogOutput(enum.Enum):
    STDERR = enum.auto()
    STDOUT = enum.auto()


@dataclass(frozen=True)
class LogConfig:
    level: Union[int, str]
    """
    Logging level, should be one of the levels defined in the logging module.
    """

    output: Union[StdLogOutput, str]
    """
    Name of the output file, or a standard one.
    """

    @staticmethod
    def parse_output_spec(spec) -> Union[StdLogOutput, str]:
        if not isinstance(spec, str):
            raise ConfigurationError(
                "Log output must be specified as a string."
            )
        spec_l = spec.lower()
        if spec_l == 'stderr':
            return StdLogOutput.STDERR
        elif spec_l == 'stdout':
            return StdLogOutput.STDOUT
        else:
            return spec


@dataclass
class CLIConfig:
    stamp_styles: Dict[str, dict]
    default_stamp_style: str
    pdf_export: PdfExportSettings
    log_config: Dict[Optional[str], LogConfig]

    def get_stamp_style(self, name=None) -> StampStyle:
        name = name or self.default_stamp_style
        try:
            style_config = dict(self.stamp_styles[name])
        except KeyError:
            raise ConfigurationError(
                f"There is no stamp style named '{name}'."
            )
        except TypeError as e:
            raise ConfigurationError(e)
        return StampStyle.from_config(style_config)


DEFAULT_ROOT_LOGGER_LEVEL = logging.INFO
DEFAULT_STAMP_STYLE = 'default'


def _retrieve_log_level(settings_dict, key, default=None) -> Union[int, str]:
    try:
        level_spec = settings_dict[key]
    except KeyError:
        if default is not None:
            return default
        raise ConfigurationError(
            f"Logging config for '{key}' does not define a log level."
        )
    if not isinstance(level_spec, (int, str)):
        raise ConfigurationError(
            f"Log levels must be int or str, not {type(level_spec)}"
        )
    return level_spec


def parse_logging_config(log_config_spec) -> Dict[Optional[str], LogConfig]:
    if not isinstance(log_config_spec, dict):
        raise ConfigurationError('logging config should be a dictionary')

    root_logger_level = _retrieve_log_level(
        log_config_spec, 'root-level', default=DEFAULT_ROOT_LOGGER_LEVEL
    )

    root_logger_output = get_and_apply(
        log_config_spec, 'root-output', LogConfig.parse_output_spec,
        default=StdLogOutput.STDERR
    )

    log_config = {None: LogConfig(root_logger_level, root_logger_output)}

    logging_by_module = log_config_spec.get('by-module', {})
    if not isinstance(logging_by_module, dict):
        raise ConfigurationError('logging.by-module should be a dict')

    for module, module_logging_settings in logging_by_module.items():
        if not isinstance(module, str):
            raise ConfigurationError(
                "Keys in logging.by-module should be strings"
            )
        if not isinstance(module_logging_settings, dict):
            raise ConfigurationError(
                f"Logging config for '{module}' should be a dictionary"
            )
        level_spec = _retrieve_log_level(module_logging_settings, 'level')
        output_spec = get_and_apply(
            module_logging_settings, 'output', LogConfig.parse_output_spec,
            default=StdLogOutput.STDERR
        )
        log_config[module] = LogConfig(level=level_spec, output=output_spec)

    return log_config


def parse_cli_config(yaml_str) -> CLIConfig:
    config_dict = yaml.safe_load(yaml_str) or {}
    if not isinstance(config_dict, dict):
        raise ConfigurationError(
            "The configuration file should contain a dictionary."
        )
    return CLIConfig(**process_config_dict(config_dict))


def process_config_dict(config_dict: dict) -> dict:
    # stamp style config
    stamp_configs = {DEFAULT_STAMP_STYLE: {}}
    stamp_specs = config_dict.get('stamp-styles', {})
    if not isinstance(stamp_specs, dict):
        raise ConfigurationError('stamp-styles should be a dictionary')
    stamp_configs.update(stamp_specs)

    default_stamp_style = config_dict.get(
        'default-stamp-style', DEFAULT_STAMP_STYLE
    )
    if default_stamp_style not in stamp_configs:
        raise ConfigurationError(
            f"Default stamp style '{default_stamp_style}' is not defined."
        )

    pdf_export = get_and_apply(
        config_dict, 'pdf-export', PdfExportSettings.from_config,
        default=PdfExportSettings()
    )

    # logging config
    log_config_spec = config_dict.get('logging', {})
    log_config = parse_logging_config(log_config_spec)

    return dict(
        stamp_styles=stamp_configs, default_stamp_style=default_stamp_style,
        pdf_export=pdf_export, log_config=log_config,
    )
