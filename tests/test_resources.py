# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

from unittest.mock import MagicMock, patch

from psyduck_sandbox.utils.resources import apply_limits, peak_memory_bytes


def test_peak_memory_is_positive() -> None:
    assert peak_memory_bytes() > 0


def test_apply_limits_sets_cpu_and_address_space() -> None:
    mock_resource = MagicMock()
    with patch("psyduck_sandbox.utils.resources.resource", mock_resource):
        apply_limits(64, 3)

    mock_resource.setrlimit.assert_any_call(mock_resource.RLIMIT_CPU, (3, 4))
    mock_resource.setrlimit.assert_any_call(mock_resource.RLIMIT_AS, (64 * 1024 * 1024, 64 * 1024 * 1024))


def test_apply_limits_skips_unset_limits() -> None:
    mock_resource = MagicMock()
    with patch("psyduck_sandbox.utils.resources.resource", mock_resource):
        apply_limits(None, None)
    mock_resource.setrlimit.assert_not_called()


def test_apply_limits_degrades_to_warning() -> None:
    mock_resource = MagicMock()
    mock_resource.setrlimit.side_effect = ValueError("not allowed")
    with patch("psyduck_sandbox.utils.resources.resource", mock_resource), patch(
        "psyduck_sandbox.utils.resources.logger"
    ) as mock_logger:
        apply_limits(64, 3)
    mock_logger.warning.assert_called_once()
    assert "not allowed" in mock_logger.warning.call_args[0][0]
