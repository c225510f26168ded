"""Tests for configuration selection and the provisioner factory."""

from unittest.mock import MagicMock

import pytest

from hdiprovisioner.app import build_provisioner_config, create_provisioner
from hdiprovisioner.app.config import (
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config,
)
from hdiprovisioner.app.services.provisioning.bigdata import SparkClusterProvisioner


class TestGetConfig:
    def test_named(self) -> None:
        assert get_config("testing") is TestingConfig
        assert get_config("development") is DevelopmentConfig

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HDI_PROVISIONER_ENV", "testing")
        assert get_config() is TestingConfig

    def test_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("HDI_PROVISIONER_ENV", raising=False)
        assert get_config() is ProductionConfig
        assert get_config("unknown") is ProductionConfig


class TestProvisionerFactory:
    def test_build_provisioner_config(self) -> None:
        config = build_provisioner_config(TestingConfig)

        assert config.subscription_id == TestingConfig.AZURE_SUBSCRIPTION_ID
        assert config.polling_interval == 0
        assert config.timeouts.create == 30
        assert set(config.credentials) == {"tenant_id", "client_id", "client_secret"}

    def test_create_provisioner(self) -> None:
        client = MagicMock()

        provisioner = create_provisioner("testing", client=client)

        assert isinstance(provisioner, SparkClusterProvisioner)
        assert provisioner.client is client
