"""Tests for the development mocks."""

from __future__ import annotations

import pytest

from apadopt.core.errors import AdoptionError, FailureKind, InvalidCodeError, ScanError
from apadopt.mocks import MockAdopter, MockCodeValidator, MockScanner


class TestMockCodeValidator:

    @pytest.mark.asyncio
    async def test_known_code(self):
        validator = MockCodeValidator(delay=0)
        session = await validator.validate_code("VS-7K2M")

        assert session.site_name == "Cafe Luna"
        assert validator.calls == ["VS-7K2M"]

    @pytest.mark.asyncio
    async def test_unknown_code(self):
        with pytest.raises(InvalidCodeError):
            await MockCodeValidator(delay=0).validate_code("VS-0000")


class TestMockScanner:

    @pytest.mark.asyncio
    async def test_default_devices(self):
        devices = await MockScanner(delay=0).scan()

        assert len(devices) == 3
        assert sum(d.managed_elsewhere for d in devices) == 1

    @pytest.mark.asyncio
    async def test_results_sequence_repeats_last(self, device):
        scanner = MockScanner(results=[[], [device]], delay=0)

        assert await scanner.scan() == []
        assert await scanner.scan() == [device]
        assert await scanner.scan() == [device]
        assert scanner.scan_count == 3

    @pytest.mark.asyncio
    async def test_error(self):
        with pytest.raises(ScanError):
            await MockScanner(error="boom", delay=0).scan()


class TestMockAdopter:

    @pytest.mark.asyncio
    async def test_factory_default(self):
        adopter = MockAdopter(delay=0)
        await adopter.adopt("192.168.1.20", "http://inform")

        assert adopter.calls == [("192.168.1.20", "http://inform", None)]

    @pytest.mark.asyncio
    async def test_custom_password(self):
        adopter = MockAdopter(delay=0)

        with pytest.raises(AdoptionError) as exc_info:
            await adopter.adopt("192.168.1.21", "http://inform")
        assert exc_info.value.kind is None
        assert "Authentication failed" in exc_info.value.message

        await adopter.adopt("192.168.1.21", "http://inform", "secret123")

    @pytest.mark.asyncio
    async def test_unreachable(self):
        adopter = MockAdopter(unreachable={"10.0.0.9"}, delay=0)

        with pytest.raises(AdoptionError) as exc_info:
            await adopter.adopt("10.0.0.9", "http://inform")

        assert exc_info.value.kind == FailureKind.CONNECTION_REFUSED
