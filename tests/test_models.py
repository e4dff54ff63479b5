from carboncli.models import EncodedOrder, EncodedStrategy, MarginalPriceOptions, StrategyUpdate, TokenPair


class TestTokenPair:
    def test_matches_either_order(self):
        pair = TokenPair("0xAaAa", "0xBbBb")
        assert pair.matches("0xAaAa", "0xBbBb")
        assert pair.matches("0xBbBb", "0xAaAa")

    def test_matches_case_insensitive(self):
        pair = TokenPair("0xAaAa", "0xBbBb")
        assert pair.matches("0xaaaa", "0xBBBB")

    def test_no_match(self):
        pair = TokenPair("0xAaAa", "0xBbBb")
        assert not pair.matches("0xAaAa", "0xCcCc")
        assert not pair.matches("0xAaAa", "0xAaAa")

    def test_from_chain(self):
        pair = TokenPair.from_chain(["0x01", "0x02"])
        assert pair == TokenPair("0x01", "0x02")


class TestEncodedStrategy:
    def test_from_chain(self):
        raw = (7, "0xowner", ("0xt0", "0xt1"), ((1, 2, 3, 4), (5, 6, 7, 8)))
        strategy = EncodedStrategy.from_chain(raw)

        assert strategy.id == 7
        assert strategy.owner == "0xowner"
        assert strategy.token0 == "0xt0"
        assert strategy.token1 == "0xt1"
        assert strategy.order0 == EncodedOrder(y=1, z=2, A=3, B=4)
        assert strategy.order1 == EncodedOrder(y=5, z=6, A=7, B=8)
        assert strategy.orders == (strategy.order0, strategy.order1)

    def test_order_to_chain(self):
        assert EncodedOrder(y=1, z=2, A=3, B=4).to_chain() == (1, 2, 3, 4)


class TestStrategyUpdate:
    def test_only_supplied_fields(self):
        update = StrategyUpdate(buy_budget="1000")
        assert update.changes() == {"buy_budget": "1000"}
        assert update.buy_price_low is None
        assert update.sell_budget is None

    def test_no_zero_defaults(self):
        update = StrategyUpdate(sell_price_low="0")
        assert update.changes() == {"sell_price_low": "0"}

    def test_empty(self):
        assert StrategyUpdate().changes() == {}


class TestMarginalPriceOptions:
    def test_values(self):
        assert MarginalPriceOptions("RESET") is MarginalPriceOptions.RESET
        assert MarginalPriceOptions("MAINTAIN") is MarginalPriceOptions.MAINTAIN
