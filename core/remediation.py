"""
Remediation hints keyed by rule id.

Static lookup consumed by the report assembler for per-finding hints and the
Top Fix section.
"""

from typing import Dict, Optional


REMEDIATIONS: Dict[str, str] = {
    "missing_signer_check": "Add an is_signer check (or a Signer<'info> account) before any state change",
    "unchecked_cpi": "Validate the target program ID (require_keys_eq!) before invoke()",
    "lamport_drain": "Guard lamport transfers with ownership and balance checks before mutating lamports",
    "unchecked_arithmetic": "Replace raw arithmetic with checked_add/checked_sub/checked_mul and handle overflow",
    "unchecked_owner": "Compare the account owner against the expected program ID (require_keys_eq! or has_one)",
    "unchecked_cpi_return": "Propagate the invoke() result with ? instead of discarding it",
    "cpi_reentrancy": "Update account state before the CPI (checks-effects-interactions)",
    "timestamp_dependence": "Avoid Clock timestamps for critical logic or allow a tolerance window",
    "unchecked_account_close": "Add a constraint that validates the close authority",
    "security_todo": "Resolve security-related TODO/FIXME markers before deployment",
    "hardcoded_address": "Move hardcoded addresses into declare_id! or named constants",
    "missing_event_emission": "Emit an event (emit!) so off-chain indexers can track the operation",
}


def remediation_for(rule_id: str) -> Optional[str]:
    return REMEDIATIONS.get(rule_id)
