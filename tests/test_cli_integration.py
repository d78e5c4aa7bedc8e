"""Integration tests for CLI."""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest


def run_cicadacove(
    args: list[str], data_dir: Path, extra_env: dict[str, str] | None = None
) -> subprocess.CompletedProcess:
    """Run cicadacove CLI command against a scratch data directory."""
    env = dict(os.environ)
    env["CICADACOVE_DATA_DIR"] = str(data_dir)
    env.pop("LOG_LEVEL", None)
    env.pop("CICADACOVE_REQUEST_TIMEOUT", None)
    env.update(extra_env or {})
    return subprocess.run(
        [sys.executable, "-m", "cicadacove.cli"] + args,
        cwd=data_dir.parent,
        env=env,
        capture_output=True,
        text=True,
    )


@pytest.fixture
def data_dir(temp_dir):
    path = temp_dir / "data"
    path.mkdir()
    return path


@pytest.fixture
def stocked(data_dir):
    """A data directory with two products in the catalog."""
    run_cicadacove(
        [
            "products", "add", "ysl-peasant-blouse",
            "--title", "YSL Peasant Blouse",
            "--designer", "Yves Saint Laurent",
            "--price", "450.00",
            "--condition", "excellent",
            "--era", "1970s",
            "--image", "https://img.test/ysl-1.jpg",
        ],
        data_dir,
    )
    run_cicadacove(
        [
            "products", "add", "chanel-boucle-coat",
            "--title", "Chanel Boucle Coat",
            "--designer", "Chanel",
            "--price", "1,200",
            "--condition", "very good",
            "--image", "https://img.test/chanel-1.jpg",
        ],
        data_dir,
    )
    return data_dir


class TestProductCommands:
    def test_add_product(self, data_dir):
        result = run_cicadacove(
            [
                "products", "add", "dior-saddle-bag",
                "--title", "Dior Saddle Bag",
                "--designer", "Dior",
                "--price", "2100",
                "--condition", "good",
                "--image", "https://img.test/dior-1.jpg",
            ],
            data_dir,
        )

        assert result.returncode == 0
        assert "Added product" in result.stdout
        assert "$2,100.00" in result.stdout
        assert (data_dir / "products.json").exists()

    def test_add_invalid_price(self, data_dir):
        result = run_cicadacove(
            [
                "products", "add", "x",
                "--title", "X", "--designer", "Y", "--price", "12.345", "--condition", "ok",
            ],
            data_dir,
        )
        assert result.returncode == 1
        assert "invalid price" in result.stderr

    def test_add_without_image(self, data_dir):
        result = run_cicadacove(
            [
                "products", "add", "bare-slip",
                "--title", "Bare Slip", "--designer", "Unknown", "--price", "40", "--condition", "good",
            ],
            data_dir,
        )
        assert result.returncode == 1
        assert "at least one image URL is required" in result.stderr

    def test_add_duplicate_slug(self, stocked):
        result = run_cicadacove(
            [
                "products", "add", "chanel-boucle-coat",
                "--title", "Again", "--designer", "Chanel", "--price", "10", "--condition", "ok",
                "--image", "https://img.test/again.jpg",
            ],
            stocked,
        )
        assert result.returncode == 1
        assert "already exists" in result.stderr

    def test_list_json(self, stocked):
        result = run_cicadacove(["products", "list", "--json"], stocked)

        assert result.returncode == 0
        products = json.loads(result.stdout)
        assert {p["slug"] for p in products} == {"ysl-peasant-blouse", "chanel-boucle-coat"}
        assert {p["price"] for p in products} == {45000, 120000}

    def test_list_empty(self, data_dir):
        result = run_cicadacove(["products", "list"], data_dir)
        assert result.returncode == 0
        assert "No products found." in result.stdout

    def test_remove_missing(self, data_dir):
        result = run_cicadacove(["products", "remove", "nope"], data_dir)
        assert result.returncode == 1
        assert "Product not found" in result.stderr


class TestCartCommands:
    def test_add_and_quote(self, stocked):
        result = run_cicadacove(["cart", "add", "ysl-peasant-blouse"], stocked)
        assert result.returncode == 0
        assert "now 1 in cart" in result.stdout

        result = run_cicadacove(["quote", "--json"], stocked)
        assert json.loads(result.stdout) == {
            "subtotal": 45000,
            "shipping": 1500,
            "tax": 3600,
            "total": 50100,
        }

    def test_free_standard_shipping_over_threshold(self, stocked):
        run_cicadacove(["cart", "add", "chanel-boucle-coat"], stocked)

        result = run_cicadacove(["quote", "--json"], stocked)
        assert json.loads(result.stdout)["shipping"] == 0

        result = run_cicadacove(["quote", "--json", "--method", "overnight"], stocked)
        assert json.loads(result.stdout)["shipping"] == 4500

    def test_update_by_slug_and_show(self, stocked):
        run_cicadacove(["cart", "add", "ysl-peasant-blouse"], stocked)
        result = run_cicadacove(["cart", "update", "ysl-peasant-blouse", "3"], stocked)
        assert result.returncode == 0
        assert "3 items" in result.stdout

        result = run_cicadacove(["cart", "show"], stocked)
        assert "3 x YSL Peasant Blouse" in result.stdout
        assert "Total:" in result.stdout

    def test_update_to_zero_removes(self, stocked):
        run_cicadacove(["cart", "add", "ysl-peasant-blouse"], stocked)
        run_cicadacove(["cart", "update", "ysl-peasant-blouse", "0"], stocked)

        result = run_cicadacove(["cart", "show"], stocked)
        assert "Cart is empty." in result.stdout

    def test_remove_unknown_line(self, stocked):
        result = run_cicadacove(["cart", "remove", "chanel-boucle-coat"], stocked)
        assert result.returncode == 1
        assert "Product not in cart" in result.stderr

    def test_clear(self, stocked):
        run_cicadacove(["cart", "add", "ysl-peasant-blouse"], stocked)
        result = run_cicadacove(["cart", "clear"], stocked)
        assert result.returncode == 0

        result = run_cicadacove(["quote", "--json"], stocked)
        assert json.loads(result.stdout)["total"] == 0

    def test_checkout_empty_cart(self, stocked):
        address = stocked.parent / "address.json"
        address.write_text(
            json.dumps(
                {
                    "first_name": "Ada",
                    "last_name": "Lovelace",
                    "address1": "12 Marylebone Rd",
                    "city": "Portland",
                    "state": "OR",
                    "postal_code": "97205",
                    "country": "US",
                    "email": "ada@example.com",
                }
            )
        )

        result = run_cicadacove(["cart", "checkout", "--address", str(address)], stocked)

        assert result.returncode == 1
        assert "Cart cannot be empty" in result.stderr

    def test_checkout_unreadable_address(self, stocked):
        run_cicadacove(["cart", "add", "ysl-peasant-blouse"], stocked)
        result = run_cicadacove(
            ["cart", "checkout", "--address", str(stocked.parent / "missing.json")], stocked
        )
        assert result.returncode == 1
        assert "could not read address" in result.stderr


class TestProfileAndOrderCommands:
    def test_add_profile_prints_token(self, data_dir):
        result = run_cicadacove(["profiles", "add", "curator@example.com", "--role", "admin"], data_dir)

        assert result.returncode == 0
        assert "Added admin profile: curator@example.com" in result.stdout
        assert "Token:" in result.stdout

    def test_orders_list_empty(self, data_dir):
        result = run_cicadacove(["orders", "list"], data_dir)
        assert result.returncode == 0
        assert "No orders found." in result.stdout

    def test_orders_show_missing(self, data_dir):
        result = run_cicadacove(["orders", "show", "nope"], data_dir)
        assert result.returncode == 1
        assert "Order not found" in result.stderr


class TestConfigurationErrors:
    def test_bad_timeout_is_reported(self, data_dir):
        result = run_cicadacove(
            ["quote"], data_dir, extra_env={"CICADACOVE_REQUEST_TIMEOUT": "soon"}
        )

        assert result.returncode == 1
        assert "Error: Invalid CICADACOVE_REQUEST_TIMEOUT='soon'" in result.stderr
        assert "Traceback" not in result.stderr

    def test_bad_log_level_is_reported(self, data_dir):
        result = run_cicadacove(["--log-level", "LOUD", "products", "list"], data_dir)

        assert result.returncode == 1
        assert "Error: Invalid LOG_LEVEL='LOUD'" in result.stderr

    def test_logs_stay_off_stdout(self, stocked):
        result = run_cicadacove(["--log-level", "INFO", "products", "list", "--json"], stocked)

        assert result.returncode == 0
        assert len(json.loads(result.stdout)) == 2
