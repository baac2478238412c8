"""
Shared test fixtures for the SolScan test suite.

Provides sample Anchor programs, temporary program directories, and a config
file that keeps tests away from the user's ~/.solscan/config.yaml.
"""

from pathlib import Path

import pytest

from core.config_manager import ConfigManager
from core.detection_rules import RuleRegistry
from core.scan_engine import ScanSession


# ── Sample Rust sources ─────────────────────────────────────────

# Scenario: sensitive handler with raw arithmetic and no signer check
WITHDRAW_UNCHECKED = """\
pub fn withdraw(ctx: Context<Withdraw>) { let total = amount + fee; }
"""

# Same handler with a signer assertion on the declaration line
WITHDRAW_SIGNER_CHECKED = """\
pub fn withdraw(ctx: Context<Withdraw>) { require!(ctx.accounts.authority.is_signer, ErrorCode::Unauthorized); let total = amount + fee; }
"""

SAMPLE_VAULT_PROGRAM = """\
use anchor_lang::prelude::*;

#[program]
pub mod vault {
    use super::*;

    pub fn deposit(ctx: Context<Deposit>, amount: u64) -> Result<()> {
        let vault = &mut ctx.accounts.vault;
        vault.balance = vault.balance.checked_add(amount).ok_or(ErrorCode::Overflow)?;
        Ok(())
    }

    pub fn claim_reward(ctx: Context<Claim>) -> Result<()> {
        let now = Clock::get()?.unix_timestamp;
        invoke(&ix, &accounts)?;
        ctx.accounts.vault.last_claim = now;
        Ok(())
    }
}

#[derive(Accounts)]
pub struct Deposit<'info> {
    #[account(mut, has_one = owner)]
    pub vault: Account<'info, Vault>,
    pub owner: Signer<'info>,
}
"""

# 44-character base58-looking public key
SAMPLE_ADDRESS = "4Nd1mBQtrMJVYVfKf2PJy9NZUZdTAsp7D4xWLs4gDB4T"


# ── Fixtures ────────────────────────────────────────────────────


@pytest.fixture
def vault_source():
    return SAMPLE_VAULT_PROGRAM


@pytest.fixture
def withdraw_unchecked():
    return WITHDRAW_UNCHECKED


@pytest.fixture
def withdraw_signer_checked():
    return WITHDRAW_SIGNER_CHECKED


@pytest.fixture
def sample_address():
    return SAMPLE_ADDRESS


@pytest.fixture
def write_source(tmp_path):
    """Return a helper that writes a source file under tmp_path."""
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def program_dir(tmp_path):
    """A small Anchor workspace with two program files and a build dir."""
    programs = tmp_path / "programs"
    (programs / "vault" / "src").mkdir(parents=True)
    (programs / "vault" / "src" / "lib.rs").write_text(SAMPLE_VAULT_PROGRAM, encoding="utf-8")
    (programs / "vault" / "src" / "withdraw.rs").write_text(WITHDRAW_UNCHECKED, encoding="utf-8")

    # Build output must be ignored by discovery
    (programs / "target").mkdir()
    (programs / "target" / "generated.rs").write_text(WITHDRAW_UNCHECKED, encoding="utf-8")
    return programs


@pytest.fixture
def empty_config(tmp_path):
    """Path to an empty YAML config file (all defaults)."""
    path = tmp_path / "solscan.yaml"
    path.write_text("", encoding="utf-8")
    return path


@pytest.fixture
def config_manager(empty_config):
    return ConfigManager(str(empty_config))


@pytest.fixture
def registry():
    return RuleRegistry.default()


@pytest.fixture
def session(registry):
    return ScanSession(registry=registry)
