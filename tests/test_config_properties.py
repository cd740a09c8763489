"""
Property-based tests for RepoIndexConfig serialization and environment
overrides.
"""

import tempfile
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from repoindex.core.config import (
    AdmissionConfig,
    LoggingConfig,
    MetadataConfig,
    PipelineConfig,
    RepoIndexConfig,
    StorageConfig,
    load_config,
)

# Strategies for generating valid configuration values
safe_path = st.from_regex(r"/[a-z0-9_\-]+(/[a-z0-9_\-]+){0,3}", fullmatch=True)

identifier = st.from_regex(r"[a-z][a-z0-9_]{0,15}", fullmatch=True)

log_level = st.sampled_from(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


@st.composite
def admission_config_strategy(draw):
    """Generate valid AdmissionConfig instances."""
    ceiling = draw(st.integers(min_value=0, max_value=10**6))
    return AdmissionConfig(
        ceiling=ceiling,
        low_water_mark=draw(st.integers(min_value=0, max_value=ceiling)),
        poll_interval_seconds=draw(
            st.floats(min_value=0.01, max_value=600.0, allow_nan=False, allow_infinity=False)
        ),
    )


@st.composite
def pipeline_config_strategy(draw):
    """Generate valid PipelineConfig instances."""
    return PipelineConfig(
        max_files_per_unit=draw(st.integers(min_value=1, max_value=10**6)),
        num_workers=draw(st.integers(min_value=1, max_value=64)),
        index_name=draw(identifier),
    )


@st.composite
def storage_config_strategy(draw):
    """Generate valid StorageConfig instances."""
    return StorageConfig(
        base_path=draw(safe_path),
        language=draw(identifier),
        staging_dir=draw(safe_path),
        work_dir=draw(safe_path),
    )


@st.composite
def metadata_config_strategy(draw):
    """Generate valid MetadataConfig instances."""
    return MetadataConfig(
        base_path=draw(safe_path),
        chunk_size=draw(st.integers(min_value=1, max_value=10**5)),
        min_stars=draw(st.integers(min_value=0, max_value=10**4)),
        max_size_kb=draw(st.integers(min_value=1, max_value=10**7)),
        languages=draw(st.lists(st.sampled_from(["Java", "Scala", "Kotlin"]), unique=True)),
    )


@st.composite
def repoindex_config_strategy(draw):
    """Generate valid RepoIndexConfig instances."""
    return RepoIndexConfig(
        admission=draw(admission_config_strategy()),
        pipeline=draw(pipeline_config_strategy()),
        storage=draw(storage_config_strategy()),
        metadata=draw(metadata_config_strategy()),
        logging=LoggingConfig(level=draw(log_level)),
    )


@given(config=repoindex_config_strategy())
@settings(max_examples=100)
def test_config_yaml_round_trip(config: RepoIndexConfig):
    """
    For any valid RepoIndexConfig object, serializing to YAML and
    deserializing should produce an equivalent configuration object.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yaml_path = Path(tmpdir) / "config.yaml"

        config.save(yaml_path)
        loaded_config = RepoIndexConfig.from_file(yaml_path)

        assert config.to_dict() == loaded_config.to_dict()


@given(config=repoindex_config_strategy())
@settings(max_examples=100)
def test_config_json_round_trip(config: RepoIndexConfig):
    """
    For any valid RepoIndexConfig object, serializing to JSON and
    deserializing should produce an equivalent configuration object.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        json_path = Path(tmpdir) / "config.json"

        config.save(json_path)
        loaded_config = RepoIndexConfig.from_file(json_path)

        assert config.to_dict() == loaded_config.to_dict()


def test_defaults_match_pipeline_constants():
    config = RepoIndexConfig()

    assert config.admission.ceiling == 25000
    assert config.admission.low_water_mark == 1000
    assert config.admission.poll_interval_seconds == 10.0
    assert config.pipeline.max_files_per_unit == 20000
    assert config.storage.language == "java"


def test_partial_file_keeps_other_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("admission:\n  ceiling: 500\n", encoding="utf-8")

    config = RepoIndexConfig.from_file(path)

    assert config.admission.ceiling == 500
    assert config.admission.low_water_mark == 1000
    assert config.pipeline.num_workers == 4


def test_unsupported_format_rejected(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("", encoding="utf-8")

    with pytest.raises(ValueError):
        RepoIndexConfig.from_file(path)


def test_missing_file_rejected(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("REPOINDEX_ADMISSION_CEILING", "40000")
    monkeypatch.setenv("REPOINDEX_ADMISSION_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("REPOINDEX_STORAGE_BASE_PATH", "/mnt/indices")
    monkeypatch.setenv("REPOINDEX_METADATA_LANGUAGES", "Java, Kotlin,")

    config = load_config()

    assert config.admission.ceiling == 40000
    assert config.admission.poll_interval_seconds == 0.5
    assert config.storage.base_path == "/mnt/indices"
    assert config.metadata.languages == ["Java", "Kotlin"]


def test_environment_overrides_can_be_disabled(monkeypatch):
    monkeypatch.setenv("REPOINDEX_ADMISSION_CEILING", "40000")

    config = load_config(apply_env=False)

    assert config.admission.ceiling == 25000
