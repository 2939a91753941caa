import pytest

from xkcdsearch.config import (
    ConfigError,
    load_api_config,
    load_search_config,
    load_update_config,
    parse_duration,
)

ADMIN_YAML = "admin_user: admin\nadmin_password: password\n"


def _write(tmp_path, text, name="config.yaml"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_duration_seconds():
    assert parse_duration("5s") == 5


def test_parse_duration_compound_equals_single_unit():
    assert parse_duration("1h30m") == parse_duration("90m")
    assert parse_duration("2m") == parse_duration("120s")


def test_parse_duration_fraction_and_millis():
    assert parse_duration("1.5h") == parse_duration("90m")
    assert parse_duration("500ms") * 2 == pytest.approx(parse_duration("1s"))


def test_parse_duration_sign_and_zero():
    assert parse_duration("-1s") == -parse_duration("1s")
    assert parse_duration("0") == 0


@pytest.mark.parametrize("text", ["", "abc", "5", "s", "1x", "1h 30m", "-"])
def test_parse_duration_rejects_bad_input(text):
    with pytest.raises(ConfigError):
        parse_duration(text)


def test_api_defaults(tmp_path):
    cfg = load_api_config(_write(tmp_path, ADMIN_YAML), env={})
    assert cfg.log_level == "DEBUG"
    assert cfg.http.address == "localhost:80"
    assert cfg.http.timeout == parse_duration("5s")
    assert cfg.words_address == "words:81"
    assert cfg.update_address == "update:82"
    assert cfg.search_address == "search:83"
    assert cfg.token_ttl == parse_duration("2m")
    assert cfg.search_concurrency == 10
    assert cfg.search_rate == 100
    assert cfg.admin_user == "admin"
    assert cfg.admin_password == "password"


def test_api_file_values(tmp_path):
    text = ADMIN_YAML + (
        "log_level: INFO\n"
        "api_server:\n"
        "  address: ':9000'\n"
        "  timeout: 3s\n"
        "search_concurrency: 4\n"
        "token_ttl: 1h\n"
    )
    cfg = load_api_config(_write(tmp_path, text), env={})
    assert cfg.log_level == "INFO"
    assert cfg.http.address == ":9000"
    assert cfg.http.timeout == parse_duration("3s")
    assert cfg.search_concurrency == 4
    assert cfg.token_ttl == parse_duration("1h")


def test_env_overrides_file(tmp_path):
    text = ADMIN_YAML + "search_rate: 7\napi_server:\n  address: ':9000'\n"
    env = {"SEARCH_RATE": "42", "API_ADDRESS": ":7000", "ADMIN_USER": "root"}
    cfg = load_api_config(_write(tmp_path, text), env=env)
    assert cfg.search_rate == 42
    assert cfg.http.address == ":7000"
    assert cfg.admin_user == "root"


def test_zero_value_falls_back_to_default(tmp_path):
    cfg = load_api_config(_write(tmp_path, ADMIN_YAML + "search_rate: 0\n"), env={})
    assert cfg.search_rate == 100


def test_required_admin_missing(tmp_path):
    with pytest.raises(ConfigError, match="admin_user"):
        load_api_config(_write(tmp_path, "log_level: INFO\n"), env={})


def test_required_admin_from_env(tmp_path):
    env = {"ADMIN_USER": "admin", "ADMIN_PASSWORD": "password"}
    cfg = load_api_config(_write(tmp_path, ""), env=env)
    assert (cfg.admin_user, cfg.admin_password) == ("admin", "password")


def test_bad_integer_in_env(tmp_path):
    with pytest.raises(ConfigError, match="search_concurrency"):
        load_api_config(_write(tmp_path, ADMIN_YAML), env={"SEARCH_CONCURRENCY": "many"})


def test_bad_duration_in_file(tmp_path):
    with pytest.raises(ConfigError):
        load_api_config(_write(tmp_path, ADMIN_YAML + "token_ttl: soon\n"), env={})


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="cannot read config"):
        load_search_config(tmp_path / "absent.yaml", env={})


def test_non_mapping_file(tmp_path):
    with pytest.raises(ConfigError):
        load_search_config(_write(tmp_path, "- a\n- b\n"), env={})


def test_search_defaults(tmp_path):
    cfg = load_search_config(_write(tmp_path, ""), env={})
    assert cfg.address == "localhost:83"
    assert cfg.db_address == "localhost:82"
    assert cfg.words_address == "localhost:81"
    assert cfg.index_ttl == parse_duration("24h")
    assert cfg.broker.address == "nats://localhost:4222"


def test_search_file_and_env(tmp_path):
    text = "search_address: ':83'\nindex_ttl: 30s\nbroker:\n  address: 'nats://broker:4222'\n"
    cfg = load_search_config(_write(tmp_path, text), env={"INDEX_TTL": "10s"})
    assert cfg.address == ":83"
    assert cfg.index_ttl == parse_duration("10s")
    assert cfg.broker.address == "nats://broker:4222"


def test_update_defaults(tmp_path):
    cfg = load_update_config(_write(tmp_path, ""), env={})
    assert cfg.address == "localhost:80"
    assert cfg.xkcd.url == "xkcd.com"
    assert cfg.xkcd.concurrency == 1
    assert cfg.xkcd.timeout == parse_duration("10s")
    assert cfg.xkcd.check_period == parse_duration("1h")
    assert cfg.broker.address == "nats://localhost:4222"


def test_update_xkcd_section(tmp_path):
    text = "xkcd:\n  url: 'http://localhost:9999'\n  concurrency: 8\n"
    cfg = load_update_config(_write(tmp_path, text), env={"XKCD_TIMEOUT": "2s"})
    assert cfg.xkcd.url == "http://localhost:9999"
    assert cfg.xkcd.concurrency == 8
    assert cfg.xkcd.timeout == parse_duration("2s")


def test_section_must_be_mapping(tmp_path):
    with pytest.raises(ConfigError, match="xkcd"):
        load_update_config(_write(tmp_path, "xkcd: plain\n"), env={})