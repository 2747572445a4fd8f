import pytest

from allpairs.constants import _parse_positive


@pytest.mark.parametrize("raw, expected", [
	("1E-9", 1e-9),
	("1e+3", 1000.0),
	("0.02", 0.02),
	(" 12 ", 12.0),
])
def test_environment_override_accepts_float_syntax(monkeypatch, raw, expected):
	monkeypatch.setenv("ALLPAIRS_TEST_VALUE", raw)
	assert _parse_positive("ALLPAIRS_TEST_VALUE", 5.0) == expected


@pytest.mark.parametrize("raw", ["abc", "-1", "0", "nan", "inf"])
def test_environment_override_rejects_bad_values(monkeypatch, capsys, raw):
	monkeypatch.setenv("ALLPAIRS_TEST_VALUE", raw)
	assert _parse_positive("ALLPAIRS_TEST_VALUE", 5.0) == 5.0
	assert "[warning] ignoring ALLPAIRS_TEST_VALUE" in capsys.readouterr().out


def test_unset_override_uses_default(monkeypatch):
	monkeypatch.delenv("ALLPAIRS_TEST_VALUE", raising=False)
	assert _parse_positive("ALLPAIRS_TEST_VALUE", 0.01) == 0.01
