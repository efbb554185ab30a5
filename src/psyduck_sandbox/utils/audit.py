# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/psyduck_sandbox

import hashlib

from loguru import logger


class AuditLogger:
    """Audit trail for submitted programs.

    Logs a hash of every program before it runs; the source itself is never logged.
    """

    def __init__(self, service_name: str = "psyduck-sandbox", enabled: bool = True):
        """Initializes the AuditLogger.

        Args:
            service_name: The name of the service recorded with each event.
            enabled: Whether to emit audit events.
        """
        self.service_name = service_name
        self.enabled = enabled

    async def log_pre_execution(self, execution_id: str, code: str, language: str, file_count: int = 1) -> str:
        """Log the execution attempt.

        Args:
            execution_id: The identifier of the execution.
            code: The submitted program (the entry file in workspace mode).
            language: The language of the program.
            file_count: Number of files in the submission.

        Returns:
            str: The SHA-256 hash of the code.
        """
        code_hash = hashlib.sha256(code.encode("utf-8")).hexdigest()
        if self.enabled:
            logger.bind(audit=True, service=self.service_name).info(
                f"AUDIT: Executing {language} code. Id: {execution_id}, Hash: {code_hash}, "
                f"Length: {len(code)}, Files: {file_count}"
            )
        return code_hash
