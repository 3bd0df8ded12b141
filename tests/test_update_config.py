"""Tests for the config updater: submitted values must read back unchanged."""

import copy
from unittest.mock import AsyncMock

import pytest
from solana.rpc.core import RPCException

from doorman_admin import update_config
from doorman_admin.config import Settings, format_timestamp
from doorman_admin.update_config import UpdateNotApplied, check_applied

NOW = 1_700_000_000


@pytest.fixture
def onchain(program, config_record):
    """Make update_config mutate the Config record the fetcher returns, like the program does."""

    async def apply(cost_in_lamports, go_live_date, enable_whitelist, ctx):
        if cost_in_lamports is not None:
            config_record.cost_in_lamports = cost_in_lamports
        if go_live_date is not None:
            config_record.go_live_date = go_live_date
        if enable_whitelist is not None:
            config_record.whitelist_enabled = enable_whitelist
        return "update-sig"

    program.rpc["update_config"] = AsyncMock(side_effect=apply)
    return config_record


@pytest.fixture
def patched_main(monkeypatch, program, settings):
    monkeypatch.setattr(Settings, "from_env", staticmethod(lambda: settings))
    monkeypatch.setattr(update_config, "program_client", AsyncMock(return_value=program))
    return program


async def test_update_scenario(patched_main, onchain, settings, wallet, capsys):
    before = copy.copy(onchain)

    view = await update_config.main("0.002", 55_555_500, False, now=NOW)

    go_live = NOW + 55_555_500
    rpc = patched_main.rpc["update_config"]
    rpc.assert_awaited_once()
    assert rpc.call_args.args == (2_000_000, go_live, False)
    assert rpc.call_args.kwargs["ctx"].accounts == {
        "config": settings.doorman_config,
        "authority": wallet.pubkey(),
    }

    assert view["cost_in_sol"] == "0.002"
    assert view["cost_in_lamports"] == "2000000"
    assert view["go_live_date"] == format_timestamp(go_live)
    assert view["whitelist_enabled"] is False

    # everything else untouched
    for field in ("authority", "treasury", "mint", "mint_token_vault", "whitelist", "counter", "num_tokens"):
        assert getattr(onchain, field) == getattr(before, field)

    out = capsys.readouterr().out
    assert ">> cost in sol should be:  0.002" in out
    assert f">> go live date should be:  {format_timestamp(go_live)}" in out
    assert f"go_live_date      : {format_timestamp(go_live)}" in out
    patched_main.provider.close.assert_awaited_once()


async def test_none_leaves_field_unchanged(patched_main, onchain):
    view = await update_config.main(None, None, True, now=NOW)

    assert patched_main.rpc["update_config"].call_args.args == (None, None, True)
    assert view["cost_in_sol"] == "0.001"
    assert view["go_live_timestamp"] == 1_640_000_000
    assert view["whitelist_enabled"] is True


async def test_rejected_update_propagates(patched_main, caplog):
    patched_main.rpc["update_config"].side_effect = RPCException("custom program error: 0x8d")

    with pytest.raises(RPCException):
        await update_config.main("0.002", 100, False, now=NOW)

    assert "config authority" in caplog.text
    patched_main.account["Config"].fetch.assert_not_called()
    patched_main.provider.close.assert_awaited_once()


async def test_stale_read_back_fails(patched_main, caplog):
    # program acknowledges but the Config read back still holds the old values
    patched_main.rpc["update_config"].return_value = "update-sig"

    with pytest.raises(UpdateNotApplied):
        await update_config.main("0.002", 100, False, now=NOW)

    assert "cost_in_sol is 0.001 on-chain, expected 0.002" in caplog.text
    patched_main.provider.close.assert_awaited_once()


def test_run_exits_non_zero_when_not_applied(monkeypatch):
    monkeypatch.setattr("sys.argv", ["doorman-update-config"])
    monkeypatch.setattr(update_config, "setup_logging", lambda verbose: None)
    monkeypatch.setattr(update_config, "main", AsyncMock(side_effect=UpdateNotApplied("stale")))

    with pytest.raises(SystemExit) as exc:
        update_config.run()

    assert exc.value.code == 1


async def test_bad_cost_is_rejected_before_connecting(patched_main):
    with pytest.raises(ValueError):
        await update_config.main("0.0000000001", 100, False, now=NOW)

    update_config.program_client.assert_not_called()


class TestCheckApplied:
    def test_matching(self):
        view = {"cost_in_sol": "0.001", "go_live_date": format_timestamp(1_640_000_000), "whitelist_enabled": True}

        assert check_applied(view, 1_000_000, 1_640_000_000, True) is True

    def test_stale_read_is_reported(self, caplog):
        view = {"cost_in_sol": "0.001", "go_live_date": format_timestamp(0), "whitelist_enabled": True}

        assert check_applied(view, 2_000_000, None, None) is False
        assert "cost_in_sol is 0.001 on-chain, expected 0.002" in caplog.text

    def test_nothing_requested(self):
        assert check_applied({}, None, None, None) is True
