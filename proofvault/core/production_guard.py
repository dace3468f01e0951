"""Production configuration guard — refuses to start a misconfigured vault.

Runs once at CLI start-up.  Outside production it does nothing; in
production every violated constraint is collected and reported together.
"""

from __future__ import annotations

import logging

from proofvault.config import VaultConfig

logger = logging.getLogger(__name__)


class ProductionConfigError(RuntimeError):
    """Raised when production configuration constraints are violated.

    The process should exit rather than catch this.
    """


def enforce_production_constraints(config: VaultConfig) -> None:
    """Validate production-critical settings.

    Constraints enforced
    --------------------
    1. Debug mode must be disabled.
    2. An authority address must be configured.
    3. Identifier normalization must be strict.

    Raises
    ------
    ProductionConfigError
        If any constraint is violated.
    """
    if not config.is_production:
        return

    violations: list[str] = []

    if config.debug:
        violations.append(
            "debug=True is not allowed in production. Set PROOFVAULT_DEBUG=false."
        )

    if not config.authority_address:
        violations.append(
            "An authority address is required in production. "
            "Set PROOFVAULT_AUTHORITY_ADDRESS."
        )

    if not config.strict_identifiers:
        violations.append(
            "Lenient identifier normalization is not allowed in production. "
            "Set PROOFVAULT_STRICT_IDENTIFIERS=true."
        )

    if violations:
        msg = "Production configuration guard failed.\n" + "\n".join(
            f"  - {v}" for v in violations
        )
        logger.critical(msg)
        raise ProductionConfigError(msg)

    logger.info("Production configuration guard passed.")
