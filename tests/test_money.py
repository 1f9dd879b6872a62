import pytest

from fintrack.services.money import round2, scale_amount


@pytest.mark.parametrize(
    "value, expected",
    [
        (2.675, 2.68),  # float repr is 2.67499999... but rounds as written
        (1.005, 1.01),
        (-1.005, -1.01),  # ties away from zero
        (6.499999999999999, 6.5),
        (13.0, 13.0),
        (0.004, 0.0),
    ],
)
def test_round2_half_up(value, expected):
    assert round2(value) == expected


def test_scale_amount_idr_to_usd():
    assert scale_amount(100000, 0.000065) == 6.5
    assert scale_amount(200000, 0.000065) == 13.0


def test_scale_amount_round_trip_within_one_cent():
    for amount, rate in [(10.01, 0.5), (100.03, 0.25), (123.45, 3.6725), (999.99, 0.2723)]:
        there = scale_amount(amount, rate)
        back = scale_amount(there, 1 / rate)
        assert abs(back - amount) <= 0.01 + 1e-9
