import json
import logging

import pytest

from smart_disenchant.config import (
    ConfigError,
    PatcherSettings,
    build_settings_from_config,
    load_settings,
    load_yaml_config,
)
from smart_disenchant.records import FormKey


def test_defaults_when_no_config():
    settings = load_settings(None)
    assert settings == PatcherSettings()
    assert settings.skip_daedric is True
    assert settings.patch_script_vdam is False
    assert settings.patch_effect_cond is False


def test_missing_file_falls_back_to_defaults(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        data = load_yaml_config(str(tmp_path / "missing.yaml"))
    assert data == {}
    assert "not found" in caplog.text


def test_synthesis_json_settings_are_read(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps(
            {
                "ItemBlacklist": ["01A2B3:Mod.esp"],
                "KywdBlacklist": ["06BBE8:Skyrim.esm"],
                "SkipDaedric": False,
                "PatchScriptVDAM": True,
                "PatchEffectCond": True,
            }
        ),
        encoding="utf-8",
    )
    settings = load_settings(str(path))
    assert settings.item_blacklist == {FormKey.parse("01A2B3:Mod.esp")}
    assert settings.kywd_blacklist == {FormKey.parse("06BBE8:Skyrim.esm")}
    assert settings.skip_daedric is False
    assert settings.patch_script_vdam is True
    assert settings.patch_effect_cond is True


def test_snake_case_yaml_settings_are_read(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "item_blacklist:\n  - '000800:Mod.esp'\nskip_daedric: false\nunused_option: 3\n",
        encoding="utf-8",
    )
    settings = load_settings(str(path))
    assert settings.item_blacklist == {FormKey.parse("000800:Mod.esp")}
    assert settings.skip_daedric is False


def test_invalid_form_keys_raise():
    with pytest.raises(ConfigError) as excinfo:
        build_settings_from_config({"ItemBlacklist": ["not-a-key"], "KywdBlacklist": "06BBE8:Skyrim.esm"})
    assert "item_blacklist" in str(excinfo.value)
    assert "kywd_blacklist" in str(excinfo.value)


def test_malformed_file_raises(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("ItemBlacklist: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(str(path))


def test_non_mapping_file_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_yaml_config(str(path))


def test_non_boolean_flag_rejected(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("SkipDaedric: 'sometimes'\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(str(path))


def test_undecodable_settings_file_raises(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_bytes(b"SkipDaedric: true\n\xff\xfe")
    with pytest.raises(ConfigError):
        load_yaml_config(str(path))


def test_settings_path_that_is_a_directory_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_yaml_config(str(tmp_path))


def test_tab_indented_json_settings_are_read(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text('{\n\t"SkipDaedric": false,\n\t"ItemBlacklist": ["000800:Mod.esp"]\n}\n', encoding="utf-8")
    settings = load_settings(str(path))
    assert settings.skip_daedric is False
    assert settings.item_blacklist == {FormKey.parse("000800:Mod.esp")}
