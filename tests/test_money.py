from money import format_rupiah, format_percent, parse_currency, round_rupiah


def test_format_rupiah_thousands_separator():
    assert format_rupiah(150000) == "Rp 150.000"
    assert format_rupiah(1500) == "Rp 1.500"
    assert format_rupiah(0) == "Rp 0"


def test_format_rupiah_rounds_half_up():
    assert format_rupiah(40500.5) == "Rp 40.501"
    assert format_rupiah(999.4) == "Rp 999"


def test_format_rupiah_negative_and_invalid():
    assert format_rupiah(-2500) == "-Rp 2.500"
    assert format_rupiah("abc") == "Rp 0"
    assert format_rupiah(None) == "Rp 0"
    assert format_rupiah(float("nan")) == "Rp 0"


def test_round_rupiah():
    assert round_rupiah(49999.5) == 50000
    assert round_rupiah(2.5) == 3
    assert round_rupiah(11000.000000000002) == 11000
    assert round_rupiah("x") == 0


def test_parse_currency():
    assert parse_currency("Rp 150.000") == 150000
    assert parse_currency("Rp 1.500,50") == 1500.5
    assert parse_currency("abc") == 0
    assert parse_currency(2500) == 2500


def test_format_percent():
    assert format_percent(10) == "10%"
    assert format_percent("x") == "0%"
