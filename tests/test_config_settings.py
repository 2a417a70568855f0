from intentswap.config import Settings


def test_zero_ex_api_key_alias(monkeypatch):
    """0x API key should load from the legacy ZEROX_API_KEY alias when present."""

    monkeypatch.delenv("ZERO_EX_API_KEY", raising=False)
    monkeypatch.setenv("ZEROX_API_KEY", "alias-from-legacy")

    settings = Settings()

    assert settings.zero_ex_api_key == "alias-from-legacy"
    assert settings.has_zero_ex_key


def test_zero_ex_api_key_direct_env(monkeypatch):
    """Environment-provided ZERO_EX_API_KEY remains the primary source."""

    monkeypatch.setenv("ZERO_EX_API_KEY", "primary-key")
    monkeypatch.setenv("ZEROX_API_KEY", "alias-from-legacy")

    settings = Settings()

    assert settings.zero_ex_api_key == "primary-key"


def test_server_wallet_key_alias(monkeypatch):
    monkeypatch.delenv("SERVER_WALLET_PRIVATE_KEY", raising=False)
    monkeypatch.setenv("CDP_WALLET_PRIVATE_KEY", "0x" + "11" * 32)

    settings = Settings()

    assert settings.has_server_wallet


def test_defaults_target_base(monkeypatch):
    monkeypatch.delenv("CHAIN_ID", raising=False)
    monkeypatch.delenv("SWAP_MAX_SUBMISSION_ATTEMPTS", raising=False)
    monkeypatch.delenv("SWAP_RETRY_DELAY_SECONDS", raising=False)

    settings = Settings()

    assert settings.chain_id == 8453
    assert settings.swap_max_submission_attempts == 3
    assert settings.swap_retry_delay_seconds == 2.0


def test_explorer_url_is_normalized(monkeypatch):
    monkeypatch.setenv("EXPLORER_URL", "https://basescan.org/")

    settings = Settings()

    assert settings.explorer_tx_url("0xabc") == "https://basescan.org/tx/0xabc"
