import json

from carboncli.config import BASE_CONFIG, NATIVE_TOKEN, Config, load_config


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "config.json")
        assert config == Config()
        assert config.network is BASE_CONFIG
        assert config.network.chain_id == 8453
        assert config.network.tokens["GAS"] == NATIVE_TOKEN

    def test_overrides(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "rpc_url": "http://localhost:8545",
                    "timelock_address": "0x" + "55" * 20,
                    "governor_address": "0x" + "44" * 20,
                    "log_level": "DEBUG",
                    "initial_sync_timeout_s": 5,
                    "proposal_gas_limit": 2_000_000,
                }
            )
        )

        config = load_config(path)

        assert config.network.rpc_url == "http://localhost:8545"
        assert config.network.timelock_address == "0x" + "55" * 20
        assert config.network.governor_address == "0x" + "44" * 20
        assert config.network.carbon_controller == BASE_CONFIG.carbon_controller
        assert config.network.tokens == BASE_CONFIG.tokens
        assert config.log_level == "DEBUG"
        assert config.initial_sync_timeout_s == 5
        assert config.proposal_gas_limit == 2_000_000
        assert config.transfer_gas_limit == 200_000

    def test_base_table_has_no_destinations(self):
        assert BASE_CONFIG.timelock_address is None
        assert BASE_CONFIG.governor_address is None
