"""
Tests for the command line interface.
"""

import pytest
from typer.testing import CliRunner

from bookingrules import __version__
from bookingrules.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every command away from any real bookingrules.yaml."""
    monkeypatch.chdir(tmp_path)
    # the default lookup also falls back to the project root
    monkeypatch.setattr(
        "bookingrules.config.get_default_config_path", lambda: tmp_path / "bookingrules.yaml"
    )


def test_quote_applies_membership_discount():
    """An eligible reservation should print the discounted price."""
    result = runner.invoke(
        app,
        [
            "quote",
            "--price", "20000",
            "--start", "2025-03-12 10:00",
            "--now", "2025-03-10 09:00",
            "--plan-discount", "0.1",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "18000.0 KRW" in result.output


def test_quote_plan_discount_without_membership_entry(tmp_path):
    """A config without a membership discount should still honour the plan rate."""
    config = tmp_path / "coupons.yaml"
    config.write_text(
        "discounts:\n"
        "  - name: welcome\n"
        "    kind: coupon\n"
        "    code: WELCOME\n"
        "    amount: 5000\n",
        encoding="utf-8",
    )

    result = runner.invoke(
        app,
        [
            "quote",
            "-p", "20000",
            "-s", "2025-03-12 10:00",
            "--now", "2025-03-10 09:00",
            "--plan-discount", "0.1",
            "--coupon", "WELCOME",
            "--config", str(config),
        ],
    )

    assert result.exit_code == 0, result.output
    # coupon first, then 10% of the remaining 15000
    assert "13500.0 KRW" in result.output


def test_quote_respects_disabled_membership(tmp_path):
    """A membership discount switched off in YAML should stay off."""
    config = tmp_path / "off.yaml"
    config.write_text(
        "discounts:\n"
        "  - name: membership\n"
        "    kind: membership\n"
        "    enabled: false\n",
        encoding="utf-8",
    )

    result = runner.invoke(
        app,
        [
            "quote",
            "-p", "20000",
            "-s", "2025-03-12 10:00",
            "--now", "2025-03-10 09:00",
            "--plan-discount", "0.1",
            "--config", str(config),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Final price: 20000 KRW" in result.output


def test_quote_denied_exits_with_two():
    """A denied reservation should explain why and exit with code 2."""
    result = runner.invoke(
        app,
        [
            "quote",
            "-p", "20000",
            "-s", "2025-03-12 10:00",
            "--now", "2025-03-10 09:00",
            "--status", "suspended",
            "--member", "M001",
        ],
    )

    assert result.exit_code == 2
    assert "Reservation not allowed" in result.output
    assert "M001 is suspended" in result.output


def test_quote_rejects_bad_start():
    """An unparsable start should be a usage error."""
    result = runner.invoke(app, ["quote", "-p", "1000", "-s", "not a date"])

    assert result.exit_code != 0


def test_refund_standard_policy():
    """A cancellation four hours ahead should refund half."""
    result = runner.invoke(
        app,
        [
            "refund",
            "--price", "10000",
            "--reservation", "2025-03-10 18:00",
            "--cancel-at", "2025-03-10 14:00",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Cancellation allowed" in result.output
    assert "5000.00 KRW" in result.output


def test_refund_strict_after_start():
    """The strict policy should refuse cancellations after the start."""
    result = runner.invoke(
        app,
        [
            "refund",
            "-p", "10000",
            "-r", "2025-03-10 18:00",
            "--cancel-at", "2025-03-10 19:00",
            "--policy", "strict",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Cancellation not allowed" in result.output
    assert "already passed" in result.output


def test_refund_unknown_policy():
    """An unknown policy name should be reported as an error."""
    result = runner.invoke(
        app,
        ["refund", "-p", "10000", "-r", "2025-03-10 18:00", "--policy", "nope"],
    )

    assert result.exit_code == 1
    assert "Unknown cancellation policy" in result.output


def test_slots_lists_bookable_slots():
    """Free slots around a booking should be listed."""
    result = runner.invoke(app, ["slots", "--date", "2025-03-10", "-b", "10:00-11:00"])

    assert result.exit_code == 0, result.output
    assert "22 bookable slot(s)" in result.output


def test_slots_fully_booked():
    """A fully booked day should print a warning."""
    result = runner.invoke(app, ["slots", "--date", "2025-03-10", "-b", "08:00-23:00"])

    assert result.exit_code == 0, result.output
    assert "No free slots found" in result.output


def test_policies_uses_config_file(tmp_path):
    """Custom policies and discounts from YAML should be listed."""
    config = tmp_path / "custom.yaml"
    config.write_text(
        "cancellation_policies:\n"
        "  - name: studio\n"
        "    description: Studio policy\n"
        "    tiers:\n"
        "      - description: any time\n"
        "        min_hours: 0\n"
        "discounts:\n"
        "  - name: membership\n"
        "    kind: membership\n",
        encoding="utf-8",
    )

    result = runner.invoke(app, ["policies", "--config", str(config)])

    assert result.exit_code == 0, result.output
    assert "studio" in result.output
    assert "Membership discount" in result.output


def test_missing_config_file(tmp_path):
    """An explicit missing config should exit with code 1."""
    result = runner.invoke(app, ["policies", "--config", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_version():
    """The version command should print the package version."""
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output
