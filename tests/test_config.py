import os

import pytest
import yaml

from beanhunter_config import BeanhunterConfig, load_config


def write(path, text):
    path.write_text(text, encoding='utf-8')
    return path


def test_discovers_config_walking_up(tmp_path):
    write(tmp_path / ".beanhunter.yml", """
exclude_paths:
  - "target/"
  - "*Generated.java"
suppression_keyword: "allow-missing-valid"
annotation_stubs:
  com.acme.Iban: ["javax.validation.Constraint"]
""")
    nested = tmp_path / "src" / "main" / "java"
    nested.mkdir(parents=True)

    config = load_config(str(nested))
    assert config.exclude_paths == ["target/", "*Generated.java"]
    assert config.suppression_keyword == "allow-missing-valid"
    assert config.annotation_stubs == {"com.acme.Iban": ["javax.validation.Constraint"]}


def test_yaml_extension_and_file_target(tmp_path):
    write(tmp_path / ".beanhunter.yaml", "suppression_keyword: skip\n")
    java_file = write(tmp_path / "Api.java", "class Api { }\n")
    assert load_config(str(java_file)).suppression_keyword == "skip"


def test_explicit_config_path(tmp_path):
    config_file = write(tmp_path / "custom.yml", "exclude_paths: ['build/']\n")
    assert load_config("/nonexistent", str(config_file)).exclude_paths == ["build/"]
    assert load_config(str(tmp_path), str(tmp_path / "missing.yml")) is None


def test_defaults_and_wrong_types_ignored(tmp_path):
    config_file = write(tmp_path / "custom.yml", """
exclude_paths: "target/"
annotation_stubs:
  com.acme.Iban: "javax.validation.Constraint"
  com.acme.Ok: []
""")
    config = load_config(str(tmp_path), str(config_file))
    assert config.exclude_paths == []
    assert config.suppression_keyword == "nosec"
    assert config.annotation_stubs == {"com.acme.Ok": []}


def test_empty_and_scalar_documents(tmp_path):
    assert load_config(str(tmp_path), str(write(tmp_path / "empty.yml", ""))) == BeanhunterConfig()
    assert load_config(str(tmp_path), str(write(tmp_path / "scalar.yml", "42\n"))) == BeanhunterConfig()


def test_invalid_yaml_raises(tmp_path):
    config_file = write(tmp_path / "broken.yml", "exclude_paths: [unclosed\n")
    with pytest.raises(yaml.YAMLError):
        load_config(str(tmp_path), str(config_file))


def test_should_exclude():
    config = BeanhunterConfig(exclude_paths=["target/", "*Generated.java"])
    assert config.should_exclude(os.path.join("app", "target", "Api.java"))
    assert config.should_exclude(os.path.join("app", "src", "ApiGenerated.java"))
    assert not config.should_exclude(os.path.join("app", "src", "Api.java"))
