"""
This module provides configuration file management. Options are stored in an INI file
as Python literals and checked against the type of their default values.
"""

from __future__ import annotations

import ast
import copy
import os
import os.path as osp
import logging
import configparser as cp
from threading import RLock
from typing import Any, Dict, Tuple

from packaging.version import Version

from .connection import OpenDisposition, OpenFlags


__all__ = ["CONF_VERSION", "DEFAULTS_CONFIG", "NoDefault", "WrapperConfig"]

logger = logging.getLogger(__name__)

_DefaultsType = Dict[str, Dict[str, Any]]

CONF_VERSION = Version("1.0.0")

DEFAULTS_CONFIG: _DefaultsType = {
    "connection": {
        "disposition": "OpenOrCreate",  # name of an OpenDisposition member
        "flags": ["ReadWrite"],  # names of OpenFlags members
        "busy_timeout": 0,  # lock wait time in ms, 0 = fail immediately
    },
    "app": {
        "log_level": 20,  # default: INFO
    },
}


class NoDefault:
    """Denotes the absence of a default value, distinct from ``None``."""


class WrapperConfig(cp.ConfigParser):
    """
    Configuration backed by an INI file. This class is safe to use from different
    threads but must not be used from different processes!

    :param path: Configuration file will be saved to this path.
    :param defaults: Dictionary of default options per section.
    :param load: Whether to load existing values from ``path``.
    :param version: Version of the configuration file format.
    """

    DEFAULT_SECTION_NAME = "main"

    def __init__(
        self,
        path: str,
        defaults: _DefaultsType | None = None,
        load: bool = True,
        version: Version = CONF_VERSION,
    ) -> None:
        super().__init__(interpolation=None)

        self._path = path
        self._lock = RLock()

        self.default_config = copy.deepcopy(
            DEFAULTS_CONFIG if defaults is None else defaults
        )
        self.default_config.setdefault(self.DEFAULT_SECTION_NAME, {})
        self.default_config[self.DEFAULT_SECTION_NAME]["version"] = str(version)

        self.reset_to_defaults()

        if load and osp.isfile(path):
            self._load_from_ini(path)

            if self.get_version() != version:
                logger.info(
                    "Updating config version from %s to %s", self.get_version(), version
                )
                self.set_version(version)

    @property
    def config_path(self) -> str:
        """The ini file where this configuration is stored."""
        return self._path

    def _load_from_ini(self, path: str) -> None:
        with self._lock:
            try:
                self.read(path, encoding="utf-8")
            except cp.MissingSectionHeaderError:
                logger.error("File contains no section headers: %s", path)

    def _set(self, section: str, option: str, value: Any) -> None:
        if not self.has_section(section):
            self.add_section(section)
        if not isinstance(value, str):
            value = repr(value)

        super().set(section, option, value)

    def save(self) -> None:
        """Save config into the associated file."""
        with self._lock:
            dirname = osp.dirname(self._path)
            if dirname:
                os.makedirs(dirname, exist_ok=True)

            with open(self._path, "w", encoding="utf-8") as configfile:
                self.write(configfile)

    def reset_to_defaults(self) -> None:
        """Reset all options to their default values. Changes are not saved."""
        with self._lock:
            for section, options in self.default_config.items():
                for option, value in options.items():
                    self._set(section, option, value)

    def get_version(self) -> Version:
        """
        :returns: Configuration file (not library!) version.
        """
        return Version(self.get(self.DEFAULT_SECTION_NAME, "version"))

    def set_version(self, version: Version) -> None:
        """
        :param version: New configuration file version.
        """
        self.set(self.DEFAULT_SECTION_NAME, "version", str(version))

    def get_default(self, section: str, option: str) -> Any:
        """
        :returns: Default value of the option or :class:`NoDefault`.
        """
        return self.default_config.get(section, {}).get(option, NoDefault)

    def get(self, section: str, option: str, default: Any = NoDefault) -> Any:  # type: ignore
        """
        Get an option.

        :param section: Config section to search in.
        :param option: Config option to get.
        :param default: Value to return if the option is not present.
        :returns: Config value.
        :raises cp.NoSectionError: if the section does not exist.
        :raises cp.NoOptionError: if the option does not exist and no default is given.
        """
        with self._lock:
            if not self.has_section(section):
                if default is NoDefault:
                    raise cp.NoSectionError(section)
                return default

            if not self.has_option(section, option):
                if default is NoDefault:
                    raise cp.NoOptionError(option, section)
                return default

            raw_value: str = super().get(section, option, raw=True)

            if isinstance(self.get_default(section, option), str):
                return raw_value

            try:
                return ast.literal_eval(raw_value)
            except (SyntaxError, ValueError):
                return raw_value

    def set(self, section: str, option: str, value: Any) -> None:  # type: ignore
        """
        Set an option. Changes are not saved until :meth:`save` is called.

        :param section: Config section.
        :param option: Config option to set.
        :param value: Config value, must have the same type as the default value.
        :raises ValueError: if the value has a different type than the default.
        """
        with self._lock:
            default_value = self.get_default(section, option)

            if default_value is not NoDefault and type(default_value) is not type(
                value
            ):
                raise ValueError(
                    f"Inconsistent type for config value [{section}][{option}]. "
                    f"Expected {default_value.__class__.__name__} but "
                    f"got {value.__class__.__name__}."
                )

            self._set(section, option, value)

    def open_options(self) -> Tuple[OpenDisposition, OpenFlags]:
        """
        :returns: Disposition and flags to open connections with.
        :raises ValueError: if the configuration names unknown members.
        """
        disposition_name = self.get("connection", "disposition")
        flag_names = self.get("connection", "flags")

        try:
            disposition = OpenDisposition[disposition_name]
            flags = OpenFlags.NONE
            for name in flag_names:
                flags |= OpenFlags[name]
        except KeyError as exc:
            raise ValueError(f"Invalid connection option: {exc}") from exc

        return disposition, flags
