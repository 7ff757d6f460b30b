"""Tests for network information module."""

from spigot.chain.networks import NetworkInfo


class TestNetworkInfo:
    """Tests for NetworkInfo dataclass."""

    def test_basic_creation(self):
        """NetworkInfo can be created with the chain id only."""
        network = NetworkInfo(chain_id=1337)

        assert network.chain_id == 1337
        assert network.block_explorer_url is None

    def test_tx_url_with_explorer(self):
        """tx_url returns the explorer link."""
        network = NetworkInfo(chain_id=1, block_explorer_url="https://etherscan.io")

        assert network.tx_url("0xabcd1234") == "https://etherscan.io/tx/0xabcd1234"

    def test_tx_url_strips_trailing_slash(self):
        """A trailing slash in the explorer URL is ignored."""
        network = NetworkInfo(chain_id=1, block_explorer_url="https://etherscan.io/")

        assert network.tx_url("0xabcd1234") == "https://etherscan.io/tx/0xabcd1234"

    def test_address_url(self):
        """address_url returns the explorer link."""
        network = NetworkInfo(chain_id=1, block_explorer_url="https://etherscan.io")

        assert network.address_url("0x1234") == "https://etherscan.io/address/0x1234"

    def test_no_explorer(self):
        """Without an explorer no links are produced."""
        network = NetworkInfo(chain_id=1337)

        assert network.tx_url("0xabcd1234") is None
        assert network.address_url("0x1234") is None
