import json

import pytest

from cctp_bridger.cli import main as cli

from conftest import RECIPIENT


def run(argv):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    return excinfo.value.code


def test_chains_lists_registry(capsys):
    assert run(["chains", "--mainnet-only"]) == 0
    out = capsys.readouterr().out
    assert "arbitrum" in out
    assert "base_sepolia" not in out


def test_plan_json(capsys):
    code = run(["plan", "--source", "arbitrum", "--dest", "base", "--amount", "500", "--recipient", RECIPIENT, "--json"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["amount"] == "500000000"
    assert payload["sourceChainId"] == 42161
    assert payload["destChainId"] == 8453
    assert len(payload["steps"]) == 4


def test_plan_summary(capsys):
    assert run(["plan", "--source", "42161", "--dest", "8453", "--amount", "1.5", "--recipient", RECIPIENT]) == 0
    assert "Amount: 1.50 USDC" in capsys.readouterr().out


def test_plan_rejects_same_chain(capsys):
    code = run(["plan", "--source", "base", "--dest", "base", "--amount", "1", "--recipient", RECIPIENT])

    assert code == 1
    assert "must differ" in capsys.readouterr().out


def test_plan_rejects_unknown_chain(capsys):
    assert run(["plan", "--source", "solana", "--dest", "base", "--amount", "1", "--recipient", RECIPIENT]) == 1


def test_bridge_requires_private_key(monkeypatch, capsys):
    monkeypatch.delenv("PRIVATE_KEY", raising=False)

    assert run(["bridge", "--source", "arbitrum", "--dest", "base", "--amount", "1"]) == 1
    assert "PRIVATE_KEY" in capsys.readouterr().out
