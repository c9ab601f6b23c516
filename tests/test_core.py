"""
Unit tests for core modules: template rendering, response parsing, schema
validation, PromptBuilder, the message formatter and Config.

Run with:
    pytest tests/test_core.py -v
"""

import pytest

from acm.config import (
    Config, ConfigManager, Params, COMMIT_SCHEMA, USER_PROMPT, DEFAULT_CUSTOM_MESSAGE,
)
from acm.errors import ConfigError, SchemaError, TemplateError
from acm.llm import RawResponse, StructuredResponse, parse_response, validate_fields
from acm.prompts import PromptBuilder, format_commit_message
from acm.templates import render, placeholders


# ---------------------------------------------------------------------------
# Template rendering
# ---------------------------------------------------------------------------

class TestRender:

    def test_substitutes_every_occurrence(self):
        result = render("||/a|| and ||/a|| then ||/b||", {"a": "x", "b": "y"})
        assert result == "x and x then y"

    def test_markers_inside_surrounding_text(self):
        result = render("prefix-||/name||-suffix", {"name": "mid"})
        assert result == "prefix-mid-suffix"

    def test_missing_field_renders_empty(self):
        result = render("[||/scope||]", {})
        assert result == "[]"
        assert "||" not in result

    def test_none_value_renders_empty(self):
        assert render("||/type||", {"type": None}) == ""

    def test_non_string_values_are_stringified(self):
        assert render("||/n|| files", {"n": 3}) == "3 files"

    def test_template_without_markers_unchanged(self):
        text = "You are a helpful assistant. a || b"
        assert render(text, {"diff": "x"}) == text

    def test_value_is_not_rescanned(self):
        # The diff itself may contain marker-like text
        result = render("||/diff||", {"diff": "||/type||"})
        assert result == "||/type||"

    def test_escaped_delimiter_is_literal(self):
        assert render(r"a \|| b", {}) == "a || b"
        assert render(r"\||/type||", {"type": "fix"}, strict=False) == "||/type||"

    @pytest.mark.parametrize("template", [
        r"\||/x||",
        r"\|||/x||",
        r"\\||",
        r"\||||/x||/y||",
    ])
    def test_escape_that_would_form_marker_fails_in_strict_mode(self, template):
        with pytest.raises(TemplateError, match="render back to itself"):
            render(template, {})

    @pytest.mark.parametrize("template", [
        "||/type||: ||/description||",
        "feat(||/scope||): ||/description||\n\n||/body||",
        "no markers here",
        "||/only||",
        r"a \|| b",
        r"\||||/type||",
        r"||/type|| \|| ||/description||",
    ])
    def test_rerender_with_empty_mapping_is_noop(self, template):
        fields = {"type": "fix", "description": "correct off-by-one in parser", "scope": "cli"}
        once = render(template, fields)
        assert render(once, {}) == once

    def test_unterminated_marker_fails_in_strict_mode(self):
        with pytest.raises(TemplateError, match="offset 6"):
            render("type: ||/type", {"type": "fix"})

    def test_invalid_name_fails_in_strict_mode(self):
        with pytest.raises(TemplateError):
            render("||/bad name||", {})

    def test_unterminated_marker_kept_in_lenient_mode(self):
        assert render("type: ||/type", {"type": "fix"}, strict=False) == "type: ||/type"

    def test_case_mismatch_fails_in_strict_mode(self):
        with pytest.raises(TemplateError, match="case-sensitive"):
            render("||/Type||", {"type": "fix"})

    def test_case_mismatch_empty_in_lenient_mode(self):
        assert render("[||/Type||]", {"type": "fix"}, strict=False) == "[]"

    def test_exact_match_wins_over_case_variant(self):
        assert render("||/Type||", {"type": "fix", "Type": "Fix"}) == "Fix"

    def test_placeholders_in_order(self):
        assert placeholders(r"||/b|| ||/a|| \||/c|| ||/b||") == ["b", "a", "b"]


# ---------------------------------------------------------------------------
# Schema validation and response parsing
# ---------------------------------------------------------------------------

class TestValidateFields:

    def test_valid_object_passes(self):
        validate_fields({"type": "fix", "description": "x"}, COMMIT_SCHEMA)

    def test_missing_required_field_named(self):
        with pytest.raises(SchemaError, match="description") as exc:
            validate_fields({"type": "fix"}, COMMIT_SCHEMA)
        assert exc.value.field == "description"

    def test_wrong_type_named(self):
        with pytest.raises(SchemaError, match="type") as exc:
            validate_fields({"type": 3, "description": "x"}, COMMIT_SCHEMA)
        assert exc.value.field == "type"

    def test_non_object_rejected(self):
        with pytest.raises(SchemaError, match="JSON object"):
            validate_fields(["fix"], COMMIT_SCHEMA)

    def test_bool_is_not_a_number(self):
        schema = {"properties": {"count": {"type": "integer"}}}
        with pytest.raises(SchemaError):
            validate_fields({"count": True}, schema)

    def test_optional_property_may_be_absent(self):
        schema = {"required": ["type"], "properties": {"scope": {"type": "string"}}}
        validate_fields({"type": "fix"}, schema)

    def test_type_list(self):
        schema = {"properties": {"scope": {"type": ["string", "null"]}}}
        validate_fields({"scope": None}, schema)


class TestParseResponse:

    def test_raw_without_schema(self):
        text = "  feat: add thing\n"
        result = parse_response(text)
        assert isinstance(result, RawResponse)
        assert result.text == text
        assert result.fields() == {"description": text}

    def test_structured_with_schema(self):
        result = parse_response('{"type": "fix", "description": "handle nulls"}', COMMIT_SCHEMA)
        assert isinstance(result, StructuredResponse)
        assert result.fields() == {"type": "fix", "description": "handle nulls"}

    def test_structured_inside_code_fence(self):
        content = '```json\n{"type": "docs", "description": "explain setup"}\n```'
        result = parse_response(content, COMMIT_SCHEMA)
        assert result.fields()["type"] == "docs"

    def test_missing_required_field(self):
        with pytest.raises(SchemaError, match="description"):
            parse_response('{"type": "fix"}', COMMIT_SCHEMA)

    def test_not_json_with_schema(self):
        with pytest.raises(SchemaError, match="not valid JSON"):
            parse_response("fix: handle nulls", COMMIT_SCHEMA)


# ---------------------------------------------------------------------------
# Message formatter
# ---------------------------------------------------------------------------

class TestFormatCommitMessage:

    def test_conventional_template(self):
        response = StructuredResponse({"type": "fix", "description": "correct off-by-one in parser"})
        assert format_commit_message("||/type||: ||/description||", response) == "fix: correct off-by-one in parser"

    def test_raw_response_uses_description(self):
        response = RawResponse("chore: bump version\n")
        assert format_commit_message("||/description||", response) == "chore: bump version"

    def test_extra_fields_available(self):
        response = StructuredResponse({"type": "feat", "scope": "cli", "description": "add flag"})
        assert format_commit_message("||/type||(||/scope||): ||/description||", response) == "feat(cli): add flag"

    def test_no_git_escaping(self):
        response = StructuredResponse({"type": "fix", "description": 'quote "it" and `run`'})
        assert format_commit_message(DEFAULT_CUSTOM_MESSAGE, response) == 'fix: quote "it" and `run`'


# ---------------------------------------------------------------------------
# PromptBuilder
# ---------------------------------------------------------------------------

class TestPromptBuilder:

    @pytest.fixture
    def builder(self):
        return PromptBuilder()

    def test_default_payload(self, builder):
        payload = builder.build(Config(), "+added line")
        assert payload["model"] == Config().params.model
        assert payload["max_tokens"] == 128
        assert payload["temperature"] == 0.0
        assert payload["top_p"] == 0.1
        assert payload["response_format"]["type"] == "json_object"
        assert "n" not in payload

    def test_diff_rendered_into_user_message(self, builder):
        payload = builder.build(Config(), "+added line")
        roles = [m["role"] for m in payload["messages"]]
        assert roles == ["system", "user"]
        assert "+added line" in payload["messages"][1]["content"]
        assert "||/diff||" not in payload["messages"][1]["content"]

    def test_diff_appended_when_not_referenced(self, builder):
        params = Params(messages=[{"role": "system", "content": "Write a commit message."}])
        payload = builder.build(Config(params=params), "+x")
        assert payload["messages"][-1] == {"role": "user", "content": "+x"}
        assert len(payload["messages"]) == 2

    def test_response_format_omitted_in_raw_mode(self, builder):
        params = Params(response_format=None)
        payload = builder.build(Config(params=params), "+x")
        assert "response_format" not in payload

    def test_n_included_when_greater_than_one(self, builder):
        payload = builder.build(Config(params=Params(n=3)), "+x")
        assert payload["n"] == 3

    def test_diff_with_marker_text_left_alone(self, builder):
        payload = builder.build(Config(), "+template = '||/type||'")
        assert "||/type||" in payload["messages"][1]["content"]

    def test_broken_template_fails(self, builder):
        params = Params(messages=[{"role": "user", "content": "diff: ||/diff"}])
        with pytest.raises(TemplateError):
            builder.build(Config(params=params), "+x")


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

class TestConfig:

    def test_defaults(self):
        config = Config()
        assert config.base_url == "https://api.together.xyz/v1"
        assert config.custom_message == "||/type||: ||/description||"
        assert config.timeout == 30
        assert config.structured is True
        assert config.params.schema == COMMIT_SCHEMA
        assert config.params.messages[1]["content"] == USER_PROMPT

    def test_to_dict_excludes_none(self):
        config = Config(params=Params(response_format=None))
        d = config.to_dict()
        assert "response_format" not in d["params"]

    def test_from_dict_ignores_unknown_keys(self):
        config = Config.from_dict({"base_url": "http://localhost:8080/v1", "unknown_key": "value"})
        assert config.base_url == "http://localhost:8080/v1"
        assert not hasattr(config, "unknown_key")

    def test_custom_messages_without_format_are_raw(self):
        config = Config.from_dict({
            "params": {"messages": [{"role": "system", "content": "Write it."}]},
        })
        assert config.structured is False

    def test_invalid_role_rejected(self):
        with pytest.raises(ConfigError, match="role"):
            Config.from_dict({"params": {"messages": [{"role": "bot", "content": "x"}]}})

    def test_non_table_params_rejected(self):
        with pytest.raises(ConfigError):
            Config.from_dict({"params": "gpt"})

    @pytest.mark.parametrize("schema, key", [
        ({"required": "type"}, "required"),
        ({"required": ["type", 1]}, "required"),
        ({"properties": ["description"]}, "properties"),
        ({"properties": {"description": "string"}}, "properties.description"),
    ])
    def test_malformed_schema_rejected(self, schema, key):
        data = {"params": {"response_format": {"type": "json_object", "schema": schema}}}
        with pytest.raises(ConfigError, match=f"schema\\.{key}'"):
            Config.from_dict(data)

    def test_validate_invalid_temperature(self):
        config, warnings = Config(params=Params(temperature=5)).validate()
        assert any("temperature" in w for w in warnings)
        assert config.params.temperature == 0.0

    def test_validate_invalid_timeout(self):
        config, warnings = Config(timeout=-1).validate()
        assert any("timeout" in w for w in warnings)
        assert config.timeout == 30

    def test_validate_valid_config_no_warnings(self):
        _, warnings = Config().validate()
        assert warnings == []

    def test_from_dict_prints_warnings(self, capsys):
        Config.from_dict({"params": {"n": 0}})
        err = capsys.readouterr().err
        assert "Config warning" in err

    def test_with_overrides_returns_copy(self):
        config = Config()
        changed = config.with_overrides(api_key="k", model="m")
        assert changed.api_key == "k"
        assert changed.params.model == "m"
        assert config.api_key == ""

    def test_with_overrides_ignores_empty(self):
        config = Config(api_key="keep")
        assert config.with_overrides(api_key=None, model="") == config


class TestConfigManager:

    def test_missing_file_raises(self, tmp_path):
        manager = ConfigManager(tmp_path / "config.toml")
        assert manager.exists() is False
        with pytest.raises(ConfigError, match="acm --setup"):
            manager.load()

    def test_env_var_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ACM_CONFIG", str(tmp_path / "env.toml"))
        assert ConfigManager().path == tmp_path / "env.toml"

    def test_default_path(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ACM_CONFIG", raising=False)
        monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path)
        assert ConfigManager().path == tmp_path / ".acm" / "config.toml"

    def test_save_and_load_roundtrip(self, tmp_path):
        path = tmp_path / "nested" / "config.toml"
        original = Config(api_key="secret", params=Params(model="gpt-4o-mini", n=2))
        ConfigManager(path).save(original)

        loaded = ConfigManager(path).load()
        assert loaded == original

    def test_roundtrip_raw_mode(self, tmp_path):
        path = tmp_path / "config.toml"
        original = Config(custom_message="||/description||", params=Params(response_format=None))
        ConfigManager(path).save(original)
        assert ConfigManager(path).load().structured is False

    def test_reads_example_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('''
base_url = "https://api.together.xyz/v1"
api_key = ""
custom_message = "||/type||: ||/description||"

[params]
max_tokens = 128
model = "mistralai/Mixtral-8x7B-Instruct-v0.1"
n = 1
temperature = 0
top_p = 0.1

[[params.messages]]
content = "Return JSON with type and description."
role = "system"

[params.response_format]
type = "json_object"

[params.response_format.schema]
required = ["type", "description"]
type = "object"

[params.response_format.schema.properties.description]
type = "string"

[params.response_format.schema.properties.type]
type = "string"
''')
        config = ConfigManager(path).load()
        assert config.structured is True
        assert config.params.schema["required"] == ["type", "description"]
        assert len(config.params.messages) == 1

    def test_malformed_toml_raises(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("not valid toml {{{")
        with pytest.raises(ConfigError, match="Could not parse"):
            ConfigManager(path).load()
        # Never rewritten implicitly
        assert path.read_text() == "not valid toml {{{"
