"""PlugBoleto ledger party (cedente), bank account and agreement (convênio) endpoints"""

from typing import Any, Dict, List

from plugboleto_gateway.config import Settings, settings as default_settings
from plugboleto_gateway.infrastructure.clients.transport import PlugBoletoTransport, QueryParams, expect_success

CEDENTES = "cedentes"
ACCOUNTS = "cedentes/contas"
AGREEMENTS = "cedentes/contas/convenios"

# Accounts are always registered as checking accounts without bank-side validation
ACCOUNT_DEFAULTS = {
    "ContaTipo": "CORRENTE",
    "ContaValidacaoAtiva": False,
    "ContaImpressaoAtualizada": False,
}


class CedenteClient:
    """One-shot CRUD calls; every error envelope raises ServiceError"""

    def __init__(self, settings: Settings | None = None, transport: PlugBoletoTransport | None = None):
        self.settings = settings or default_settings
        self.transport = transport or PlugBoletoTransport(self.settings)

    # Ledger parties

    def list_cedentes(self, params: QueryParams | None = None) -> Any:
        return self._list(CEDENTES, params)

    def create_cedente(self, data: Dict[str, Any]) -> Any:
        return expect_success(self.transport.post(CEDENTES, data)).data

    def update_cedente(self, cedente_id: int | str, data: Dict[str, Any]) -> Any:
        """Updates are authorized by the party's own CNPJ, not the configured one"""
        headers = {"cnpj-cedente": str(data.get("CedenteCPFCNPJ", ""))}
        return expect_success(self.transport.put(f"{CEDENTES}/{cedente_id}", data, headers=headers)).data

    # Bank accounts

    def list_accounts(self, params: QueryParams | None = None) -> Any:
        return self._list(ACCOUNTS, params)

    def create_account(self, data: Dict[str, Any]) -> Any:
        return expect_success(self.transport.post(ACCOUNTS, {**data, **ACCOUNT_DEFAULTS})).data

    def update_account(self, account_id: int, data: Dict[str, Any]) -> Any:
        return expect_success(self.transport.put(f"{ACCOUNTS}/{account_id}", {**data, **ACCOUNT_DEFAULTS})).data

    def delete_account(self, account_id: int) -> Any:
        return expect_success(self.transport.delete(f"{ACCOUNTS}/{account_id}")).data

    # Agreements

    def list_agreements(self, params: QueryParams | None = None) -> Any:
        return self._list(AGREEMENTS, params)

    def create_agreement(self, data: Dict[str, Any]) -> Any:
        return expect_success(self.transport.post(AGREEMENTS, data)).data

    def update_agreement(self, agreement_id: int, data: Dict[str, Any]) -> Any:
        return expect_success(self.transport.put(f"{AGREEMENTS}/{agreement_id}", data)).data

    def delete_agreement(self, agreement_id: int) -> Any:
        return expect_success(self.transport.delete(f"{AGREEMENTS}/{agreement_id}")).data

    def _list(self, path: str, params: QueryParams | None) -> Any:
        """Listing always uses the default page size, overriding any caller limit"""
        query: List[tuple] = [(name, value) for name, value in params or [] if name != "limit"]
        query.append(("limit", self.settings.default_page_limit))
        return expect_success(self.transport.get(path, params=query)).data
