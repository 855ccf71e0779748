import pytest

from services.config import ConfigurationError, load_settings, resolve_limit

BASE_ENV = {
    "OPENAI_API_KEY": "sk-test",
    "SFTP_HOST": "sftp.example.com",
    "SFTP_USER": "calls",
    "SFTP_PASS": "secret",
    "SFTP_REMOTE_PATH": "/recordings",
    "SPACES_KEY": "key",
    "SPACES_SECRET": "secret",
    "SPACES_REGION": "ams3",
    "SPACES_BUCKET": "call-archive",
}


def test_defaults():
    settings = load_settings(BASE_ENV)

    assert settings.sftp_port == 22
    assert settings.remote_root == "/recordings"
    assert settings.state_store_name == "statestore"
    assert settings.collection_name == "calls"
    assert settings.spaces_prefix == ""
    assert settings.endpoint is None
    assert settings.pipeline_max_files is None
    assert settings.sftp_max_files is None
    assert settings.pipeline_concurrency == 1
    assert settings.retry_attempts == 3
    assert settings.offline_mode is False


def test_missing_values_are_all_reported():
    env = dict(BASE_ENV)
    for name in ("OPENAI_API_KEY", "SFTP_HOST", "SPACES_BUCKET"):
        env.pop(name)

    with pytest.raises(ConfigurationError) as excinfo:
        load_settings(env)

    errors = excinfo.value.field_errors
    assert set(errors) == {"OPENAI_API_KEY", "SFTP_HOST", "SPACES_BUCKET"}
    assert errors["SFTP_HOST"] == ["SFTP_HOST is required"]
    assert errors["OPENAI_API_KEY"] == ["OPENAI_API_KEY is required"]


def test_offline_mode_does_not_need_sftp():
    env = {k: v for k, v in BASE_ENV.items() if not k.startswith("SFTP_")}
    env.update({"OFFLINE_MODE": "true", "LOCAL_VOICE_INBOX": "/data/inbox"})

    settings = load_settings(env)

    assert settings.offline_mode is True
    assert settings.local_inbox == "/data/inbox"
    assert settings.remote_root == "/"


def test_invalid_endpoint_is_reported():
    with pytest.raises(ConfigurationError) as excinfo:
        load_settings({**BASE_ENV, "SPACES_ENDPOINT": "not a url"})
    assert "SPACES_ENDPOINT" in excinfo.value.field_errors


def test_numeric_settings():
    settings = load_settings(
        {
            **BASE_ENV,
            "SFTP_PORT": "2222",
            "PIPELINE_MAX_FILES": "10",
            "SFTP_MAX_FILES": "-1",
            "PIPELINE_CONCURRENCY": "4",
            "SPACES_ENDPOINT": "https://fra1.digitaloceanspaces.com/",
        }
    )
    assert settings.sftp_port == 2222
    assert settings.pipeline_max_files == 10
    assert settings.sftp_max_files is None
    assert settings.pipeline_concurrency == 4
    assert settings.endpoint == "https://fra1.digitaloceanspaces.com"


def test_blank_or_bad_port_defaults():
    assert load_settings({**BASE_ENV, "SFTP_PORT": ""}).sftp_port == 22
    assert load_settings({**BASE_ENV, "SFTP_PORT": "abc"}).sftp_port == 22


@pytest.mark.parametrize("value,expected", [(None, None), ("", None), ("0", None), ("-3", None), ("x", None), ("5", 5), (7, 7)])
def test_resolve_limit(value, expected):
    assert resolve_limit(value) == expected


def test_known_hosts_setting():
    assert load_settings(BASE_ENV).sftp_known_hosts is None
    assert load_settings({**BASE_ENV, "SFTP_KNOWN_HOSTS": " "}).sftp_known_hosts is None
    settings = load_settings({**BASE_ENV, "SFTP_KNOWN_HOSTS": "/etc/ssh/known_hosts"})
    assert settings.sftp_known_hosts == "/etc/ssh/known_hosts"
