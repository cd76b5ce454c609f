"""Test display-safe provider summaries."""

from ccswitch.core.config import AppType, Provider
from ccswitch.core.summary import build_summary, display_order_key


def _provider(provider_id, app_type, settings_config, **fields):
    return Provider(
        id=provider_id,
        name=fields.pop("name", provider_id),
        app_type=app_type,
        settings_config=settings_config,
        **fields,
    )


def test_claude_summary_masks_token():
    provider = _provider(
        "mirror",
        AppType.CLAUDE,
        {
            "env": {
                "ANTHROPIC_AUTH_TOKEN": "sk-ant-XXXX1111",
                "ANTHROPIC_BASE_URL": "https://x.example",
                "ANTHROPIC_MODEL": "claude-sonnet-4-5",
            }
        },
        notes="team",
    )
    summary = build_summary(provider, active=True)

    assert summary.masked_secret == "sk-a…1111"
    assert summary.base_url == "https://x.example"
    assert summary.model == "claude-sonnet-4-5"
    assert summary.config_lines is None
    assert summary.notes == "team"
    assert summary.active


def test_short_secret_is_hidden():
    provider = _provider("p", AppType.CLAUDE, {"env": {"ANTHROPIC_AUTH_TOKEN": "short"}})
    assert build_summary(provider).masked_secret == "***"


def test_missing_secret_is_none():
    provider = _provider("p", AppType.GEMINI, {"env": {}, "config": {}})
    summary = build_summary(provider)
    assert summary.masked_secret is None
    assert summary.base_url is None


def test_codex_summary_reads_config_block():
    provider = _provider(
        "relay",
        AppType.CODEX,
        {
            "auth": {"OPENAI_API_KEY": "sk-openai-abcdef123"},
            "config": 'base_url = "https://relay.example"\nmodel = "o3"',
        },
    )
    summary = build_summary(provider)

    assert summary.masked_secret == "sk-o…f123"
    assert summary.base_url == "https://relay.example"
    assert summary.model == "o3"
    assert summary.config_lines == 2


def test_display_order():
    providers = [
        _provider("late", AppType.CLAUDE, {}, created_at=30),
        _provider("indexed-2", AppType.CLAUDE, {}, sort_index=2, created_at=50),
        _provider("early", AppType.CLAUDE, {}, created_at=10),
        _provider("indexed-0", AppType.CLAUDE, {}, sort_index=0, created_at=40),
    ]
    ordered = sorted(providers, key=display_order_key)
    assert [p.id for p in ordered] == ["indexed-0", "indexed-2", "early", "late"]
