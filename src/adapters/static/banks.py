"""
Static bank directory - Implements BankDirectory.

Nigerian banks with their settlement bank codes.
"""

from src.domain.ports import Bank

NIGERIAN_BANKS: tuple[Bank, ...] = (
    Bank(code="044", name="Access Bank"),
    Bank(code="063", name="Access Bank (Diamond)"),
    Bank(code="050", name="Ecobank Nigeria"),
    Bank(code="070", name="Fidelity Bank"),
    Bank(code="011", name="First Bank of Nigeria"),
    Bank(code="214", name="First City Monument Bank"),
    Bank(code="058", name="Guaranty Trust Bank"),
    Bank(code="030", name="Heritage Bank"),
    Bank(code="301", name="Jaiz Bank"),
    Bank(code="082", name="Keystone Bank"),
    Bank(code="526", name="Parallex Bank"),
    Bank(code="076", name="Polaris Bank"),
    Bank(code="101", name="Providus Bank"),
    Bank(code="221", name="Stanbic IBTC Bank"),
    Bank(code="068", name="Standard Chartered Bank"),
    Bank(code="232", name="Sterling Bank"),
    Bank(code="100", name="Suntrust Bank"),
    Bank(code="032", name="Union Bank of Nigeria"),
    Bank(code="033", name="United Bank For Africa"),
    Bank(code="215", name="Unity Bank"),
    Bank(code="035", name="Wema Bank"),
    Bank(code="057", name="Zenith Bank"),
)


class StaticBankDirectory:
    """Case-insensitive lookup over a fixed bank list."""

    def __init__(self, banks: tuple[Bank, ...] = NIGERIAN_BANKS) -> None:
        self._banks = banks

    def search_banks(self, query: str) -> list[Bank]:
        """Search banks by name (case-insensitive substring)."""
        if not query.strip():
            return []
        lower_query = query.strip().lower()
        return [bank for bank in self._banks if lower_query in bank.name.lower()]

    def get_bank_by_code(self, code: str) -> Bank | None:
        return next((bank for bank in self._banks if bank.code == code), None)
