from pathlib import Path

import pytest

from hookrelay.config import DispatchConfig, HookBinding, load_effective_config
from hookrelay.errors import ConfigError


def test_config_precedence_and_binding_accumulation(tmp_path: Path) -> None:
    path = tmp_path / "hooks.yaml"
    path.write_text(
        """
default_priority: 3
hooks:
  - name: topic_edit_before
    target: stamp
  - name: template_head
    kind: handler_method
    target: render_head
    handler_class: ThemeHooks
    priority: 9
"""
    )

    system = {
        "default_priority": 1,
        "template_prefix": "tpl_",
        "hooks": [{"name": "boot", "target": "warmup"}],
    }
    runtime = {"template_prefix": "template_"}

    cfg = load_effective_config(path, system_defaults=system, runtime_override=runtime)

    assert cfg.default_priority == 3
    assert cfg.template_prefix == "template_"
    assert [binding.name for binding in cfg.hooks] == ["boot", "topic_edit_before", "template_head"]
    assert cfg.hooks[2].registration_params() == {"class_name": "ThemeHooks"}


def test_defaults_without_file() -> None:
    cfg = load_effective_config()
    assert cfg == DispatchConfig()
    assert cfg.hooks == []


def test_binding_params_carry_reserved_keys() -> None:
    binding = HookBinding(
        name="topic_load",
        kind="hook",
        target="load",
        delegate=True,
        handler_class="TopicHooks",
        params={"source": "plugin"},
    )
    assert binding.registration_params() == {
        "source": "plugin",
        "delegate": True,
        "class_name": "TopicHooks",
    }


def test_invalid_config_raises_config_error(tmp_path: Path) -> None:
    unknown_key = tmp_path / "bad.yaml"
    unknown_key.write_text("hookz: []\n")
    with pytest.raises(ConfigError):
        load_effective_config(unknown_key)

    not_mapping = tmp_path / "list.yaml"
    not_mapping.write_text("- a\n- b\n")
    with pytest.raises(ConfigError):
        load_effective_config(not_mapping)

    broken = tmp_path / "broken.yaml"
    broken.write_text("hooks: [\n")
    with pytest.raises(ConfigError):
        load_effective_config(broken)

    with pytest.raises(ConfigError):
        load_effective_config(tmp_path / "missing.yaml")


def test_empty_file_is_default_config(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_effective_config(path) == DispatchConfig()
