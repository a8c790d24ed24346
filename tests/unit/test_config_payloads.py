from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest
from pydantic import ValidationError

from vmconf.config.base import ConfigPayload, DummyConfig, ProvisionerConfig
from vmconf.config.file import FileConfig
from vmconf.config.shell import DEFAULT_UPLOAD_PATH, ShellConfig


class SampleConfig(ProvisionerConfig):
    a: Optional[int] = None
    b: Optional[int] = None
    env: dict[str, str] = {}


class OtherConfig(ProvisionerConfig):
    a: Optional[int] = None


def test_payloads_satisfy_protocol() -> None:
    assert isinstance(SampleConfig(), ConfigPayload)
    assert isinstance(DummyConfig(), ConfigPayload)


def test_set_options_tracks_explicit_fields() -> None:
    payload = SampleConfig()
    payload.set_options({"a": 1})

    assert payload.a == 1
    assert payload.model_fields_set == {"a"}


def test_set_options_records_unknown_keys() -> None:
    payload = SampleConfig()
    payload.set_options({"a": 1, "bogus": True, "also_bogus": 2})

    assert payload.invalid_options == ["also_bogus", "bogus"]
    assert payload.validate_config() == [
        "The following settings shouldn't exist: also_bogus, bogus"
    ]


def test_set_options_rejects_wrong_types() -> None:
    payload = SampleConfig()

    with pytest.raises(ValidationError):
        payload.set_options({"a": "not a number"})


def test_merge_is_right_biased_and_non_mutating() -> None:
    base = SampleConfig()
    base.set_options({"a": 1, "b": 2})
    override = SampleConfig()
    override.set_options({"b": 3})

    merged = base.merge(override)

    assert (merged.a, merged.b) == (1, 3)
    assert (base.a, base.b) == (1, 2)
    assert override.a is None
    assert merged.model_fields_set == {"a", "b"}


def test_merge_ignores_override_defaults() -> None:
    base = SampleConfig()
    base.set_options({"env": {"A": "1"}})
    override = SampleConfig()
    override.set_options({"a": 5})

    merged = base.merge(override)

    assert merged.env == {"A": "1"}
    assert merged.a == 5


def test_merge_copies_override_values() -> None:
    base = SampleConfig()
    override = SampleConfig()
    override.set_options({"env": {"A": "1"}})

    merged = base.merge(override)
    merged.env["B"] = "2"

    assert override.env == {"A": "1"}


def test_merge_unions_unknown_options() -> None:
    base = SampleConfig()
    base.set_options({"first": 1})
    override = SampleConfig()
    override.set_options({"second": 2})

    merged = base.merge(override)

    assert merged.invalid_options == ["first", "second"]
    assert base.invalid_options == ["first"]


def test_merge_resets_finalized_flag() -> None:
    base = SampleConfig()
    base.finalize()

    merged = base.merge(SampleConfig(a=1))

    assert base.finalized
    assert not merged.finalized


def test_merge_rejects_unrelated_payload_types() -> None:
    with pytest.raises(TypeError, match="Cannot merge OtherConfig into SampleConfig"):
        SampleConfig().merge(OtherConfig())


def test_merge_with_dummy_keeps_base() -> None:
    base = SampleConfig(a=1)

    merged = base.merge(DummyConfig())

    assert isinstance(merged, SampleConfig)
    assert merged.a == 1
    assert merged is not base


def test_dummy_config_is_inert() -> None:
    dummy = DummyConfig()
    dummy.set_options({"anything": 1})
    dummy.finalize()

    assert dummy.validate_config() == []
    assert dummy.to_dict() == {}
    assert dummy.clone() == dummy
    assert dummy.clone() is not dummy
    assert isinstance(dummy.merge(DummyConfig()), DummyConfig)

    real = SampleConfig(a=2)
    merged = dummy.merge(real)
    assert isinstance(merged, SampleConfig)
    assert merged.a == 2
    assert merged is not real


def test_clone_is_deep() -> None:
    original = SampleConfig()
    original.set_options({"env": {"A": "1"}, "unknown": 1})

    duplicate = original.clone()
    duplicate.env["B"] = "2"

    assert original.env == {"A": "1"}
    assert duplicate.invalid_options == ["unknown"]


def test_shell_defaults() -> None:
    payload = ShellConfig()

    assert payload.upload_path == DEFAULT_UPLOAD_PATH
    assert payload.privileged is True
    assert payload.env == {}


def test_shell_finalize_normalizes_without_marking_fields_set() -> None:
    payload = ShellConfig()
    payload.set_options({"inline": "echo $1", "args": ["--port", 8080], "env": {"PORT": 8080}})

    payload.finalize()
    payload.finalize()

    assert payload.args == ["--port", "8080"]
    assert payload.env == {"PORT": "8080"}
    assert payload.model_fields_set == {"inline", "args", "env"}
    assert payload.finalized


def test_shell_validation_requires_exactly_one_script_source(tmp_path: Path) -> None:
    assert ShellConfig().validate_config(tmp_path) == [
        "One of `path` or `inline` must be set."
    ]

    script = tmp_path / "setup.sh"
    script.write_text("#!/bin/sh\n", encoding="utf-8")
    both = ShellConfig(inline="echo hi", path="setup.sh")
    assert both.validate_config(tmp_path) == ["Only one of `path` or `inline` may be set."]

    assert ShellConfig(path="setup.sh").validate_config(tmp_path) == []
    assert ShellConfig(inline="echo hi").validate_config(tmp_path) == []


def test_shell_validation_reports_missing_script(tmp_path: Path) -> None:
    errors = ShellConfig(path="missing.sh").validate_config(tmp_path)

    assert errors == [f"Path for shell provisioner does not exist: {tmp_path / 'missing.sh'}"]


def test_shell_validation_rejects_blank_upload_path() -> None:
    errors = ShellConfig(inline="true", upload_path="  ").validate_config()

    assert errors == ["`upload_path` must be set for the shell provisioner."]


def test_file_validation(tmp_path: Path) -> None:
    assert FileConfig().validate_config(tmp_path) == [
        "File provisioner source is required.",
        "File provisioner destination is required.",
    ]

    missing = FileConfig(source="app.tar", destination="/opt/app.tar")
    assert missing.validate_config(tmp_path) == [
        f"File provisioner source file not found: {tmp_path / 'app.tar'}"
    ]

    generated = FileConfig(source="app.tar", destination="/opt/app.tar", generated=True)
    assert generated.validate_config(tmp_path) == []

    (tmp_path / "app.tar").write_bytes(b"")
    assert missing.validate_config(tmp_path) == []


def test_file_finalize_expands_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    payload = FileConfig(source="~/id_rsa.pub", destination="/home/vagrant/.ssh/key.pub")

    payload.finalize()

    assert payload.source == str(tmp_path / "id_rsa.pub")


def test_changed_fields_include_in_place_edits() -> None:
    payload = SampleConfig()
    payload.env["K"] = "v"

    assert payload.model_fields_set == set()
    assert payload.changed_fields() == {"env"}


def test_merge_applies_in_place_edits_from_override() -> None:
    base = SampleConfig(a=1, env={"A": "1"})
    override = SampleConfig()
    override.env.update({"B": "2"})

    merged = base.merge(override)

    assert merged.a == 1
    assert merged.env == {"B": "2"}
    assert base.env == {"A": "1"}


def test_set_options_copies_nested_values() -> None:
    options = {"inline": "echo", "env": {"A": "1"}}
    payload = ShellConfig()

    payload.set_options(options)
    payload.env["B"] = "2"

    assert options["env"] == {"A": "1"}
