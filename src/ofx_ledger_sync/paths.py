"""Mapping of statement file locations to budget and account names."""

from pathlib import Path

from .utils.exceptions import PathResolutionError


def resolve_budget_and_account(base_dir: Path, path: Path) -> tuple[str, str]:
    """
    Derive (budget name, account name) from a file under the transaction directory.

    Exports are dropped into ``<base_dir>/<budget>/<account>/``; anything
    deeper than the account directory is allowed.

    Args:
        base_dir: Watched transaction directory
        path: Statement file path

    Returns:
        Tuple of (budget_name, account_name)

    Raises:
        PathResolutionError: If the file is outside ``base_dir`` or not inside
            an account directory
    """
    base = base_dir.expanduser().resolve()
    target = path.expanduser().resolve()

    try:
        parts = target.relative_to(base).parts
    except ValueError:
        raise PathResolutionError(f"{path} is not inside the transaction directory {base_dir}") from None

    if len(parts) < 3:
        raise PathResolutionError(
            f"{path} must be placed in <transaction_dir>/<budget>/<account>/ to be imported"
        )
    return parts[0], parts[1]


def parse_account_spec(spec: str) -> tuple[str, str]:
    """Split a ``BUDGET/ACCOUNT`` command-line value."""
    budget_name, sep, account_name = spec.partition("/")
    if not sep or not budget_name or not account_name:
        raise PathResolutionError(f"Expected BUDGET/ACCOUNT, got {spec!r}")
    return budget_name, account_name
