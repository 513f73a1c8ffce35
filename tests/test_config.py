"""Tests for configuration loading and validation."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml
from pydantic import ValidationError

from sealstore.config.loader import apply_env_overrides, load_config, save_config
from sealstore.config.schema import MODES, StoreConfig
from sealstore.errors import ConfigurationError


def test_default_config(default_config):
    """Test that default config has expected values."""
    assert default_config.mode == "dev"
    assert default_config.parallel_writes is False

    assert default_config.vault.unseal_keys_path == "secret/unseal-keys"
    assert default_config.vault.auth_path == "kubernetes"
    assert default_config.k8s.namespace == "default"
    assert default_config.hsm.key_label == "sealstore"
    assert default_config.hsm.slot_id is None
    assert default_config.aws.s3_regions == []


def test_modes():
    """Test the set of supported modes."""
    assert set(MODES) == {
        "gcp-kms-gcs",
        "aws-kms-s3",
        "azure-kv",
        "alibaba-kms-oss",
        "vault",
        "k8s",
        "hsm",
        "hsm-k8s",
        "dev",
        "file",
    }


def test_config_is_immutable(default_config):
    """Test that a loaded configuration cannot be changed."""
    with pytest.raises(ValidationError):
        default_config.mode = "file"


def test_load_config_nonexistent_returns_defaults():
    """Test that loading a nonexistent config returns defaults."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "nonexistent.yaml"
        config = load_config(config_path, env={})

        assert config.mode == "dev"


def test_load_config_empty_file_returns_defaults():
    """Test that an empty config file returns defaults."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "empty.yaml"
        config_path.write_text("")

        config = load_config(config_path, env={})
        assert config.mode == "dev"


def test_load_config_partial_override():
    """Test that partial config overrides only specified values."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "partial.yaml"

        partial_config = {
            "mode": "aws-kms-s3",
            "aws": {
                "s3_regions": ["eu-west-1", "us-east-1"],
                "s3_buckets": ["unseal-eu", "unseal-us"],
            },
        }

        with open(config_path, "w") as f:
            yaml.safe_dump(partial_config, f)

        config = load_config(config_path, env={})

        # Overridden values
        assert config.mode == "aws-kms-s3"
        assert config.aws.s3_buckets == ["unseal-eu", "unseal-us"]

        # Default values
        assert config.aws.s3_prefix == ""
        assert config.aws.kms_key_ids == []


def test_load_config_invalid_yaml():
    """Test that invalid YAML raises ConfigurationError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "invalid.yaml"
        config_path.write_text("{ invalid yaml: [")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(config_path, env={})


def test_load_config_not_a_mapping():
    """Test that a YAML list is rejected."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "list.yaml"
        config_path.write_text("- dev\n- file\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(config_path, env={})


@pytest.mark.parametrize(
    "invalid_config",
    [
        {"mode": "etcd"},
        {"hsm": {"slot_id": -1}},
        {"vault": {"adress": "typo"}},
    ],
)
def test_load_config_validation_error(invalid_config):
    """Test that invalid values raise ConfigurationError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "invalid_values.yaml"

        with open(config_path, "w") as f:
            yaml.safe_dump(invalid_config, f)

        with pytest.raises(ConfigurationError, match="validation failed"):
            load_config(config_path, env={})


def test_hsm_pin_in_file_rejected():
    """Test that the HSM PIN is only accepted from the environment."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "pin.yaml"

        with open(config_path, "w") as f:
            yaml.safe_dump({"mode": "hsm", "hsm": {"pin": "1234"}}, f)

        with pytest.raises(ConfigurationError, match="SEALSTORE_HSM_PIN"):
            load_config(config_path, env={})


def test_env_overrides():
    """Test that SEALSTORE_* variables override file values."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "env.yaml"

        with open(config_path, "w") as f:
            yaml.safe_dump({"mode": "k8s", "hsm": {"module_path": "/lib/hsm.so"}}, f)

        config = load_config(
            config_path,
            env={
                "SEALSTORE_MODE": "hsm",
                "SEALSTORE_HSM_PIN": "1234",
                "SEALSTORE_VAULT_TOKEN": "s.token",
                "UNRELATED": "x",
            },
        )

        assert config.mode == "hsm"
        assert config.hsm.module_path == "/lib/hsm.so"
        assert config.hsm.pin.get_secret_value() == "1234"
        assert config.vault.token.get_secret_value() == "s.token"


def test_apply_env_overrides_does_not_mutate_input():
    """Test that overrides return a copy."""
    data = {"hsm": {"module_path": "/lib/hsm.so"}}

    merged = apply_env_overrides(data, {"SEALSTORE_HSM_PIN": "1234"})

    assert merged["hsm"] == {"module_path": "/lib/hsm.so", "pin": "1234"}
    assert data == {"hsm": {"module_path": "/lib/hsm.so"}}


def test_env_override_into_empty_section():
    """Test that an empty YAML section still accepts environment overrides."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "stub.yaml"
        config_path.write_text("mode: hsm\nhsm:\nvault:\n")

        config = load_config(
            config_path,
            env={"SEALSTORE_HSM_PIN": "1234", "SEALSTORE_VAULT_TOKEN": "s.token"},
        )

        assert config.hsm.pin.get_secret_value() == "1234"
        assert config.hsm.key_label == "sealstore"
        assert config.vault.token.get_secret_value() == "s.token"


def test_empty_section_without_override_uses_defaults():
    """Test that an empty YAML section is treated as all defaults."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "stub.yaml"
        config_path.write_text("mode: k8s\nk8s:\n")

        config = load_config(config_path, env={})

        assert config.k8s.namespace == "default"


def test_env_override_into_non_mapping_section():
    """Test that overriding into a scalar section is a configuration error."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "scalar.yaml"
        config_path.write_text("mode: vault\nvault: http://vault:8200\n")

        with pytest.raises(ConfigurationError, match="vault must be a mapping"):
            load_config(config_path, env={"SEALSTORE_VAULT_TOKEN": "s.token"})


def test_secrets_hidden_in_repr():
    """Test that credentials never appear in the config representation."""
    config = StoreConfig(hsm={"pin": "1234"}, alibaba={"access_key_secret": "hunter2"})

    assert "1234" not in repr(config)
    assert "hunter2" not in repr(config)


def test_save_and_load_config():
    """Test saving and loading config roundtrip."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "test.yaml"

        original = StoreConfig(
            mode="k8s",
            k8s={"namespace": "vault", "secret_name": "vault-unseal-keys"},
        )

        save_config(original, config_path)
        loaded = load_config(config_path, env={})

        assert loaded == original


def test_save_config_excludes_secrets():
    """Test that credentials are never written to disk."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "secrets.yaml"

        config = StoreConfig(
            mode="hsm",
            hsm={"pin": "1234"},
            vault={"token": "s.token"},
            file={"fernet_key": "key"},
        )
        save_config(config, config_path)

        saved = yaml.safe_load(config_path.read_text())
        assert "pin" not in saved["hsm"]
        assert "token" not in saved["vault"]
        assert "fernet_key" not in saved["file"]
        assert "access_key_secret" not in saved["alibaba"]


def test_save_config_creates_directory():
    """Test that save_config creates parent directory if needed."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "nested" / "dir" / "config.yaml"

        save_config(StoreConfig(), config_path)

        assert config_path.exists()
        assert config_path.parent.is_dir()
