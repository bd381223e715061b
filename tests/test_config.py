"""Tests for YAML config loading, overrides and validation."""

import pytest

from fmrec.config import (
    ExperimentConfig,
    FieldConfig,
    _parse_value,
    load_config,
    validate_config,
)
from fmrec.errors import ConfigurationError

BASE_YAML = """
model_name: fm
seed: 7
data:
  fields:
    - name: user
      cardinality: 10
    - name: item
      cardinality: 20
model:
  num_factors: 4
sgd:
  learning_rate: 0.05
training:
  optimizer: sgd
  num_iterations: 30
  early_stop: true
  tolerance: 1e-6
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(BASE_YAML)
    return path


def _valid_config(**training) -> ExperimentConfig:
    config = ExperimentConfig()
    config.data.fields = [FieldConfig("user", 3), FieldConfig("item", 3)]
    for key, value in training.items():
        setattr(config.training, key, value)
    return config


class TestLoadConfig:
    def test_loads_nested_sections(self, config_file):
        config = load_config(config_file)
        assert config.model_name == "fm"
        assert config.seed == 7
        assert [f.name for f in config.data.fields] == ["user", "item"]
        assert config.data.fields[1].cardinality == 20
        assert config.model.num_factors == 4
        assert config.sgd.learning_rate == 0.05
        assert config.training.num_iterations == 30
        assert config.training.early_stop is True

    def test_exponent_without_dot_is_a_float(self, config_file):
        config = load_config(config_file)
        assert config.training.tolerance == pytest.approx(1e-6)

    def test_defaults_fill_missing_sections(self, config_file):
        config = load_config(config_file)
        assert config.ftrl.alpha == 0.1
        assert config.model.interaction == "auto"
        assert config.training.snapshot_last_loss is True

    def test_overrides(self, config_file):
        config = load_config(
            config_file,
            [
                "training.optimizer=ftrl",
                "ftrl.lambda1=0.5",
                "model.num_factors=8",
                "training.early_stop=false",
            ],
        )
        assert config.training.optimizer == "ftrl"
        assert config.ftrl.lambda1 == 0.5
        assert config.model.num_factors == 8
        assert config.training.early_stop is False

    def test_int_value_for_float_field(self, config_file):
        config = load_config(config_file, ["sgd.learning_rate=1"])
        assert isinstance(config.sgd.learning_rate, float)
        assert config.sgd.learning_rate == 1.0

    def test_malformed_override(self, config_file):
        with pytest.raises(ConfigurationError):
            load_config(config_file, ["training.num_iterations"])

    def test_wrong_type_is_configuration_error(self, config_file):
        with pytest.raises(ConfigurationError):
            load_config(config_file, ["model.num_factors=abc"])

    def test_invalid_value_rejected_at_load(self, config_file):
        with pytest.raises(ConfigurationError):
            load_config(config_file, ["training.optimizer=ftrl", "ftrl.alpha=0"])

    def test_shipped_configs_load(self):
        from pathlib import Path

        root = Path(__file__).resolve().parents[1] / "configs"
        for path in sorted(root.glob("*.yaml")):
            config = load_config(path)
            assert config.data.fields


class TestValidateConfig:
    def test_default_with_fields_is_valid(self):
        assert validate_config(_valid_config()) is not None

    @pytest.mark.parametrize(
        "section,key,value",
        [
            ("model", "num_factors", 0),
            ("model", "init_std", -1.0),
            ("model", "interaction", "fast"),
            ("sgd", "learning_rate", 0.0),
            ("sgd", "reg_v", -0.1),
            ("training", "num_iterations", 0),
            ("training", "tolerance", -1e-5),
            ("training", "optimizer", "adam"),
        ],
    )
    def test_rejects_invalid(self, section, key, value):
        config = _valid_config()
        setattr(getattr(config, section), key, value)
        with pytest.raises(ConfigurationError):
            validate_config(config)

    @pytest.mark.parametrize(
        "key,value",
        [("alpha", 0.0), ("alpha", float("nan")), ("beta", -1.0), ("lambda1", -0.1), ("lambda2", float("inf"))],
    )
    def test_rejects_invalid_ftrl(self, key, value):
        config = _valid_config(optimizer="ftrl")
        setattr(config.ftrl, key, value)
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_sgd_settings_ignored_for_ftrl(self):
        config = _valid_config(optimizer="ftrl")
        config.sgd.learning_rate = 0.0
        validate_config(config)

    def test_unknown_model(self):
        config = _valid_config()
        config.model_name = "xgboost"
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_ffm_rejects_identity(self):
        config = _valid_config()
        config.model_name = "ffm"
        config.model.interaction = "identity"
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_rating_bounds_order(self):
        config = _valid_config()
        config.model.min_rating = 5.0
        config.model.max_rating = 1.0
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_fields_may_be_left_to_the_tensor(self):
        validate_config(ExperimentConfig())

    def test_declared_fields_are_checked(self):
        config = _valid_config()
        config.data.fields.append(FieldConfig("user", 4))
        with pytest.raises(ConfigurationError):
            validate_config(config)


class TestParseValue:
    def test_types(self):
        assert _parse_value("true") is True
        assert _parse_value("False") is False
        assert _parse_value("none") is None
        assert _parse_value("3") == 3
        assert _parse_value("0.25") == 0.25
        assert _parse_value("[1, 2]") == [1, 2]
        assert _parse_value("ftrl") == "ftrl"
