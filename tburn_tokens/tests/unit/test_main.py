"""
Unit tests for the tburn-tokens command line
"""

import json
import logging

import pytest

from tburn_tokens.main import build_parser, main


@pytest.fixture
def cli_env(monkeypatch, database_url):
    monkeypatch.setenv("TBURN_DATABASE_URL", database_url)
    monkeypatch.setenv("TBURN_RPC_URL", "http://127.0.0.1:1")
    for name in ("TBC20_FACTORY_ADDRESS", "TBC721_FACTORY_ADDRESS", "TBC1155_FACTORY_ADDRESS"):
        monkeypatch.delenv(name, raising=False)

    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def request_file(tmp_path, deployer_address):
    path = tmp_path / "request.json"
    path.write_text(json.dumps({
        "standard": "TBC-20",
        "name": "Cli Token",
        "symbol": "CLI",
        "deployerAddress": deployer_address,
        "totalSupply": "21000000",
        "decimals": 8,
    }))
    return path


def read_output(capsys):
    return json.loads(capsys.readouterr().out)


class TestParser:
    """Test argument parsing"""

    def test_subcommands(self):
        """Test subcommand arguments"""
        parser = build_parser()

        args = parser.parse_args(["--log-level", "DEBUG", "verify", "0xabc", "--security-score", "70"])
        assert args.command == "verify"
        assert args.address == "0xabc"
        assert args.security_score == 70

        args = parser.parse_args(["tokens", "--standard", "TBC-721", "--admin"])
        assert args.standard == "TBC-721"
        assert args.admin

    def test_command_required(self):
        """Test a subcommand is required"""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:
    """Run commands against a temporary database"""

    @pytest.mark.asyncio
    async def test_simulate_then_query(self, cli_env, request_file, capsys):
        """Test simulate followed by queries and pause"""
        assert await main(["--log-level", "ERROR", "simulate", "--request", str(request_file)]) == 0
        simulated = read_output(capsys)
        address = simulated["token"]["contractAddress"]
        assert simulated["token"]["totalSupply"] == "21000000"
        assert simulated["transaction"]["status"] == "success"

        assert await main(["--log-level", "ERROR", "stats"]) == 0
        assert read_output(capsys)["totalTokens"] == 1

        assert await main(["--log-level", "ERROR", "tokens", "--admin"]) == 0
        rows = read_output(capsys)
        assert rows[0]["contractAddress"] == address
        assert rows[0]["totalSupply"] == "21M"

        assert await main(["--log-level", "ERROR", "pause", address]) == 0
        assert read_output(capsys)["token"]["status"] == "paused"

        assert await main(["--log-level", "ERROR", "tokens", "--status", "paused"]) == 0
        assert len(read_output(capsys)) == 1

    @pytest.mark.asyncio
    async def test_unknown_token(self, cli_env, capsys):
        """Test admin commands on an unknown token"""
        assert await main(["--log-level", "ERROR", "resume", "0x" + "12" * 20]) == 1
        assert read_output(capsys)["success"] is False

    @pytest.mark.asyncio
    async def test_resume_needs_paused_token(self, cli_env, request_file, capsys):
        """Test resume of a token that was never paused is refused"""
        await main(["--log-level", "ERROR", "simulate", "--request", str(request_file)])
        address = read_output(capsys)["token"]["contractAddress"]

        assert await main(["--log-level", "ERROR", "resume", address]) == 1
        assert read_output(capsys)["error"] == f"Cannot resume token {address} in status confirmed"

        await main(["--log-level", "ERROR", "pause", address])
        capsys.readouterr()
        assert await main(["--log-level", "ERROR", "resume", address]) == 0
        assert read_output(capsys)["token"]["status"] == "active"

    @pytest.mark.asyncio
    async def test_export_to_file(self, cli_env, request_file, tmp_path, capsys):
        """Test exporting the registry to a file"""
        await main(["--log-level", "ERROR", "simulate", "--request", str(request_file)])
        capsys.readouterr()
        output = tmp_path / "out" / "tokens.json"

        assert await main(["--log-level", "ERROR", "export", "--output", str(output)]) == 0

        exported = json.loads(output.read_text())
        assert len(exported) == 1
        assert exported[0]["symbol"] == "CLI"

    @pytest.mark.asyncio
    async def test_process_receipt_failure(self, cli_env, request_file, tmp_path, capsys):
        """Test a reverted receipt exits with an error"""
        receipt_file = tmp_path / "receipt.json"
        receipt_file.write_text(json.dumps({"status": "0x0", "blockNumber": "0x1", "gasUsed": "0x0", "logs": []}))

        code = await main([
            "--log-level", "ERROR", "process-receipt",
            "--request", str(request_file), "--receipt", str(receipt_file), "--tx-hash", "0x" + "ef" * 32,
        ])

        assert code == 1
        assert read_output(capsys) == {
            "success": False,
            "transactionHash": "0x" + "ef" * 32,
            "error": "Transaction failed on-chain",
        }

    @pytest.mark.asyncio
    async def test_bad_config(self, cli_env, tmp_path):
        """Test an invalid config file exits with code 2"""
        config = tmp_path / "bad.json"
        config.write_text(json.dumps({"chain_id": "five"}))

        assert await main(["--config", str(config), "stats"]) == 2
