# -*- coding: utf-8 -*-

import configparser as cp

import pytest
from packaging.version import Version

from sqlitewrap import OpenDisposition, OpenFlags
from sqlitewrap.config import CONF_VERSION, NoDefault, WrapperConfig


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "config" / "sqlitewrap.ini")


def test_defaults(config_path):
    conf = WrapperConfig(config_path)

    assert conf.get("connection", "disposition") == "OpenOrCreate"
    assert conf.get("connection", "flags") == ["ReadWrite"]
    assert conf.get("connection", "busy_timeout") == 0
    assert conf.get("app", "log_level") == 20
    assert conf.get_version() == CONF_VERSION


def test_missing_options(config_path):
    conf = WrapperConfig(config_path)

    with pytest.raises(cp.NoSectionError):
        conf.get("missing", "option")

    with pytest.raises(cp.NoOptionError):
        conf.get("connection", "missing")

    assert conf.get("connection", "missing", default=5) == 5
    assert conf.get_default("connection", "missing") is NoDefault


def test_set_checks_type(config_path):
    conf = WrapperConfig(config_path)

    conf.set("connection", "busy_timeout", 500)
    assert conf.get("connection", "busy_timeout") == 500

    with pytest.raises(ValueError):
        conf.set("connection", "busy_timeout", "500")

    with pytest.raises(ValueError):
        conf.set("connection", "flags", "ReadOnly")


def test_save_and_load(config_path):
    conf = WrapperConfig(config_path)
    conf.set("connection", "disposition", "CreateNew")
    conf.set("connection", "flags", ["ReadWrite", "MultiThreaded"])
    conf.save()

    conf = WrapperConfig(config_path)

    assert conf.get("connection", "disposition") == "CreateNew"
    assert conf.get("connection", "flags") == ["ReadWrite", "MultiThreaded"]


def test_load_disabled(config_path):
    conf = WrapperConfig(config_path)
    conf.set("connection", "busy_timeout", 100)
    conf.save()

    conf = WrapperConfig(config_path, load=False)
    assert conf.get("connection", "busy_timeout") == 0


def test_reset_to_defaults(config_path):
    conf = WrapperConfig(config_path)
    conf.set("connection", "busy_timeout", 100)
    conf.reset_to_defaults()

    assert conf.get("connection", "busy_timeout") == 0


def test_version_update(config_path):
    conf = WrapperConfig(config_path, version=Version("0.9.0"))
    conf.save()

    assert WrapperConfig(config_path, load=False).get_version() == CONF_VERSION
    assert WrapperConfig(config_path).get_version() == CONF_VERSION


def test_custom_defaults(config_path):
    conf = WrapperConfig(config_path, defaults={"section": {"option": 1.5}})

    assert conf.get("section", "option") == 1.5
    assert not conf.has_section("connection")


def test_open_options(config_path):
    conf = WrapperConfig(config_path)
    assert conf.open_options() == (OpenDisposition.OpenOrCreate, OpenFlags.ReadWrite)

    conf.set("connection", "disposition", "OpenExisting")
    conf.set("connection", "flags", ["ReadOnly", "InterpretAsUri"])

    disposition, flags = conf.open_options()

    assert disposition is OpenDisposition.OpenExisting
    assert flags == OpenFlags.ReadOnly | OpenFlags.InterpretAsUri


def test_open_options_invalid(config_path):
    conf = WrapperConfig(config_path)
    conf.set("connection", "flags", ["ReadWrite", "Bogus"])

    with pytest.raises(ValueError):
        conf.open_options()
