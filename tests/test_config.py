import pytest

from licmatch.core.config import LicmatchConfig, LimitsConfig, ScanConfig, load_config_from_path


def test_defaults():
    cfg = LicmatchConfig()

    assert cfg.limits.max_template_depth == 32
    assert cfg.limits.max_expression_depth == 64
    assert cfg.scan.executor_kind == "auto"
    assert cfg.scan.include_deprecated is True
    cfg.validate()


def test_json_round_trip(tmp_path):
    cfg = LicmatchConfig(limits=LimitsConfig(max_match_states=1000), scan=ScanConfig(max_workers=3))
    path = tmp_path / "licmatch.json"

    cfg.to_json(path)
    loaded = load_config_from_path(path)

    assert loaded.limits.max_match_states == 1000
    assert loaded.scan.max_workers == 3
    assert loaded.scan.submit_window is None
    assert loaded.to_dict() == cfg.to_dict()


def test_toml_load_normalizes_executor_kind(tmp_path):
    path = tmp_path / "licmatch.toml"
    path.write_text(
        "[limits]\nmax_variable_chars = 500\n\n[scan]\nexecutor_kind = \"PROCESS\"\nsubmit_window = 8\n",
        encoding="utf-8",
    )

    cfg = load_config_from_path(path)

    assert cfg.limits.max_variable_chars == 500
    assert cfg.scan.executor_kind == "process"
    assert cfg.scan.submit_window == 8


def test_unsupported_suffix(tmp_path):
    path = tmp_path / "licmatch.yaml"
    path.write_text("limits: {}\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config_from_path(path)


def test_unknown_keys_are_rejected():
    with pytest.raises(ValueError, match="max_depth"):
        LicmatchConfig.from_dict({"limits": {"max_depth": 3}})


@pytest.mark.parametrize(
    "cfg",
    [
        LicmatchConfig(scan=ScanConfig(executor_kind="fork")),
        LicmatchConfig(scan=ScanConfig(max_workers=-1)),
        LicmatchConfig(scan=ScanConfig(submit_window=0)),
        LicmatchConfig(limits=LimitsConfig(max_template_depth=0)),
        LicmatchConfig(limits=LimitsConfig(max_match_states=-5)),
    ],
)
def test_validate_rejects_bad_values(cfg):
    with pytest.raises(ValueError):
        cfg.validate()
