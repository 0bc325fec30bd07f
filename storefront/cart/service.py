"""
Synchronisation panier local -> panier distant avant le checkout.

Politiques (choix assumés, pas des oublis):
- FAIL_OPEN: un échec sur une ligne (ou sur la lecture du panier distant) est journalisé
  puis ignoré; le checkout continue, le backend tarifera l'état réconcilié dont il dispose.
- KEEP_REMOTE_ONLY_LINES: les lignes présentes uniquement côté distant ne sont jamais
  supprimées (l'utilisateur a pu les modifier depuis un autre appareil en cours de session).
Les écritures sont strictement séquentielles, une ligne à la fois, sur le même panier distant.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
import logging

from storefront.cart import repository
from storefront.cart.models import CartLine, LineKey, aggregate_lines
from storefront.errors import StorefrontError, SyncFailure

logger = logging.getLogger(__name__)

FAIL_OPEN = True
KEEP_REMOTE_ONLY_LINES = True


@dataclass
class SyncReport:
    added: List[CartLine] = field(default_factory=list)
    updated: List[CartLine] = field(default_factory=list)
    unchanged: List[CartLine] = field(default_factory=list)
    remote_only: List[LineKey] = field(default_factory=list)
    failures: List[SyncFailure] = field(default_factory=list)
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": len(self.added),
            "updated": len(self.updated),
            "unchanged": len(self.unchanged),
            "remote_only": len(self.remote_only),
            "failures": [f.to_dict() for f in self.failures],
            "skipped": self.skipped,
        }


def _record_failure(report: SyncReport, error: Exception, line: Optional[CartLine], operation: str) -> None:
    failure = SyncFailure(
        str(error),
        product_id=line.product_id if line else "",
        variant_id=line.variant_id if line else None,
        operation=operation,
    )
    logger.warning(
        "cart.sync %s failed product_id=%s variant_id=%s: %s",
        operation, failure.product_id, failure.variant_id, error,
    )
    report.failures.append(failure)
    if not FAIL_OPEN:
        raise failure from error


async def sync_cart(local_items: Iterable[Any], token: Optional[str]) -> SyncReport:
    """
    Réconcilie le panier distant avec les lignes locales (produit + variante + quantité).
    - Ligne absente côté distant -> ajout
    - Même identité, quantité différente -> mise à jour
    - Même quantité -> rien
    Retour: SyncReport (les échecs y sont listés, jamais levés).
    """
    local_lines = aggregate_lines(local_items)
    report = SyncReport()
    if not local_lines:
        return report

    try:
        # le backend peut renvoyer plusieurs lignes pour une même identité
        remote_lines = aggregate_lines(await repository.fetch_remote_cart(token))
    except StorefrontError as e:
        _record_failure(report, e, None, "fetch")
        report.skipped = True
        return report

    remote_by_key: Dict[LineKey, CartLine] = {line.key: line for line in remote_lines}

    for line in local_lines:
        existing = remote_by_key.get(line.key)
        if existing is None:
            operation = "add"
        elif existing.quantity != line.quantity:
            operation = "update"
        else:
            report.unchanged.append(line)
            continue
        try:
            if operation == "add":
                await repository.add_remote_item(token, line)
                report.added.append(line)
            else:
                await repository.update_remote_item(token, line)
                report.updated.append(line)
        except StorefrontError as e:
            _record_failure(report, e, line, operation)

    local_keys = {line.key for line in local_lines}
    if KEEP_REMOTE_ONLY_LINES:
        report.remote_only = [key for key in remote_by_key if key not in local_keys]

    logger.info(
        "cart.sync done added=%s updated=%s unchanged=%s failures=%s remote_only=%s",
        len(report.added), len(report.updated), len(report.unchanged), len(report.failures), len(report.remote_only),
    )
    return report
