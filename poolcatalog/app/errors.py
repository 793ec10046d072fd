from __future__ import annotations

from typing import List, Optional, Sequence


class ServiceError(Exception):
    """Domain specific error that can be translated to HTTP responses."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CatalogValidationError(ServiceError):
    def __init__(self, problems: Sequence[str]):
        self.problems: List[str] = list(problems)
        lines = "\n".join(f"- {problem}" for problem in self.problems)
        super().__init__(f"Katalog obsahuje chyby:\n{lines}", status_code=422)


class PriceReferenceError(ServiceError):
    def __init__(self, item_code: str, reference_id: Optional[str], reason: str):
        self.item_code = item_code
        self.reference_id = reference_id
        super().__init__(
            f"Položku '{item_code}' nelze ocenit: referenční produkt '{reference_id}' {reason}.",
            status_code=422,
        )


class MissingMeasurementError(ServiceError):
    def __init__(self, item_code: str):
        self.item_code = item_code
        super().__init__(
            f"Položka '{item_code}' se počítá koeficientem a vyžaduje rozměry bazénu.",
            status_code=422,
        )


class SurchargeCycleError(ServiceError):
    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        super().__init__(f"Cyklus povinných příplatků: {' -> '.join(self.path)}", status_code=422)


class SurchargeNotFoundError(ServiceError):
    def __init__(self, item_code: str, surcharge_id: str):
        self.item_code = item_code
        self.surcharge_id = surcharge_id
        super().__init__(
            f"Povinný příplatek '{surcharge_id}' položky '{item_code}' není v aktivním katalogu.",
            status_code=422,
        )


class ConfigurationNotFoundError(ServiceError):
    def __init__(self, configuration_id: str):
        self.configuration_id = configuration_id
        super().__init__(f"Konfigurace '{configuration_id}' neexistuje.", status_code=404)
