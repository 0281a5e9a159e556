"""Tests for configuration loading."""

from pathlib import Path

import pytest

from linkbin.config import LinkBinSettings, PlaidConfig, load_settings


class TestLoadSettings:
    """Test suite for load_settings sources and precedence."""

    @pytest.mark.unit
    def test_defaults(self) -> None:
        settings = load_settings()

        assert settings.data_dir == Path.home() / ".linkbin"
        assert settings.store_path == Path.home() / ".linkbin" / "credentials.json"
        assert settings.link.port == 8080
        assert settings.link.host == "127.0.0.1"
        assert settings.plaid.environment == "sandbox"
        assert settings.plaid.products == ("transactions",)

    @pytest.mark.unit
    def test_explicit_data_dir(self, data_dir: Path) -> None:
        settings = load_settings(data_dir=data_dir)

        assert settings.store_path == data_dir / "credentials.json"

    @pytest.mark.unit
    def test_none_overrides_are_ignored(self) -> None:
        settings = load_settings(data_dir=None)

        assert settings.data_dir == Path.home() / ".linkbin"

    @pytest.mark.unit
    def test_prefixed_environment_variables(
        self, monkeypatch: pytest.MonkeyPatch, data_dir: Path
    ) -> None:
        monkeypatch.setenv("LINKBIN_DATA_DIR", str(data_dir))
        monkeypatch.setenv("LINKBIN_LINK__PORT", "9090")
        monkeypatch.setenv("LINKBIN_PLAID__CLIENT_ID", "env_client_id")
        monkeypatch.setenv("LINKBIN_PLAID__SECRET", "env_secret")

        settings = load_settings()

        assert settings.data_dir == data_dir
        assert settings.link.port == 9090
        assert settings.plaid.client_id == "env_client_id"
        assert settings.plaid.secret == "env_secret"  # noqa: S105

    @pytest.mark.unit
    def test_legacy_plaid_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLAID_CLIENT_ID", "legacy_id")
        monkeypatch.setenv("PLAID_SECRET", "legacy_secret")
        monkeypatch.setenv("PLAID_ENV", "production")

        settings = load_settings()

        assert settings.plaid.client_id == "legacy_id"
        assert settings.plaid.environment == "production"

    @pytest.mark.unit
    def test_legacy_variables_keep_yaml_plaid_settings(
        self, monkeypatch: pytest.MonkeyPatch, data_dir: Path
    ) -> None:
        (data_dir / "config.yaml").write_text(
            "plaid:\n"
            "  environment: development\n"
            "  products: [auth]\n"
            "  client_name: Mine\n"
        )
        monkeypatch.setenv("PLAID_CLIENT_ID", "legacy_id")
        monkeypatch.setenv("PLAID_SECRET", "legacy_secret")

        settings = load_settings(data_dir=data_dir)

        assert settings.plaid.client_id == "legacy_id"
        assert settings.plaid.secret == "legacy_secret"  # noqa: S105
        assert settings.plaid.environment == "development"
        assert settings.plaid.products == ("auth",)
        assert settings.plaid.client_name == "Mine"

    @pytest.mark.unit
    def test_prefixed_variables_win_over_legacy(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PLAID_CLIENT_ID", "legacy_id")
        monkeypatch.setenv("PLAID_SECRET", "legacy_secret")
        monkeypatch.setenv("PLAID_ENV", "sandbox")
        monkeypatch.setenv("LINKBIN_PLAID__ENVIRONMENT", "production")

        settings = load_settings()

        assert settings.plaid.environment == "production"
        assert settings.plaid.client_id == "legacy_id"

    @pytest.mark.unit
    def test_legacy_environment_overrides_yaml(
        self, monkeypatch: pytest.MonkeyPatch, data_dir: Path
    ) -> None:
        (data_dir / "config.yaml").write_text("plaid:\n  environment: development\n")
        monkeypatch.setenv("PLAID_ENV", "production")

        settings = load_settings(data_dir=data_dir)

        assert settings.plaid.environment == "production"

    @pytest.mark.unit
    def test_unknown_legacy_environment_is_ignored(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("PLAID_ENV", "staging")

        settings = load_settings()

        assert settings.plaid.environment == "sandbox"

    @pytest.mark.unit
    def test_yaml_files_merge_key_by_key(
        self, tmp_path: Path, data_dir: Path
    ) -> None:
        (tmp_path / "config.yaml").write_text(
            "plaid:\n  client_name: Mine\n  products: [auth]\nlink:\n  port: 7000\n"
        )
        (data_dir / "config.yaml").write_text("plaid:\n  environment: development\n")

        settings = load_settings(data_dir=data_dir)

        assert settings.plaid.environment == "development"
        assert settings.plaid.client_name == "Mine"
        assert settings.plaid.products == ("auth",)
        assert settings.link.port == 7000

    @pytest.mark.unit
    def test_yaml_in_data_dir(self, data_dir: Path) -> None:
        (data_dir / "config.yaml").write_text(
            "plaid:\n"
            "  client_id: yaml_client_id\n"
            "  secret: yaml_secret\n"
            "  products: [transactions, auth]\n"
            "link:\n"
            "  port: 8181\n"
        )

        settings = load_settings(data_dir=data_dir)

        assert settings.plaid.client_id == "yaml_client_id"
        assert settings.plaid.products == ("transactions", "auth")
        assert settings.link.port == 8181

    @pytest.mark.unit
    def test_data_dir_yaml_wins_over_working_directory(
        self, tmp_path: Path, data_dir: Path
    ) -> None:
        (tmp_path / "config.yaml").write_text("link:\n  port: 7000\n")
        (data_dir / "config.yaml").write_text("link:\n  port: 7001\n")

        settings = load_settings(data_dir=data_dir)

        assert settings.link.port == 7001

    @pytest.mark.unit
    def test_environment_wins_over_yaml(
        self, monkeypatch: pytest.MonkeyPatch, data_dir: Path
    ) -> None:
        (data_dir / "config.yaml").write_text("link:\n  port: 8181\n")
        monkeypatch.setenv("LINKBIN_LINK__PORT", "9191")

        settings = load_settings(data_dir=data_dir)

        assert settings.link.port == 9191

    @pytest.mark.unit
    def test_invalid_value_raises_value_error(self, data_dir: Path) -> None:
        (data_dir / "config.yaml").write_text("link:\n  port: 70000\n")

        with pytest.raises(ValueError, match="Configuration error"):
            load_settings(data_dir=data_dir)

    @pytest.mark.unit
    def test_settings_are_immutable(self) -> None:
        settings = load_settings()

        with pytest.raises(ValueError):
            settings.data_dir = Path("/elsewhere")  # type: ignore[misc]


class TestRequiredCredentials:
    """Test suite for credential validation."""

    @pytest.mark.unit
    def test_missing_credentials(self) -> None:
        settings = LinkBinSettings()

        with pytest.raises(ValueError) as exc_info:
            settings.validate_required_credentials()

        assert "PLAID_CLIENT_ID is required" in str(exc_info.value)
        assert "PLAID_SECRET is required" in str(exc_info.value)

    @pytest.mark.unit
    def test_present_credentials(self) -> None:
        settings = LinkBinSettings(
            plaid=PlaidConfig(client_id="id", secret="secret")  # noqa: S106
        )

        settings.validate_required_credentials()

    @pytest.mark.unit
    def test_empty_products_rejected(self) -> None:
        with pytest.raises(ValueError):
            PlaidConfig(products=())
