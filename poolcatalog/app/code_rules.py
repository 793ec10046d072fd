"""Category rules that turn a raw catalog record into a ``(prefix, suffix)`` pair.

One rule per category, registered in :data:`CODE_RULES`. Every category in
:data:`CATEGORIES` must have a rule; anything else falls through to
:func:`rule_default`, which marks the record as unrecognized.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from poolcatalog.app.models import RawCatalogRecord
from poolcatalog.app.pool_code import SET_MARKER, dimensions_from_values, format_pool_code
from poolcatalog.shared.dimensions import extract, extract_one

CATEGORIES = (
    "bazeny",
    "sety",
    "schodiste",
    "technologie",
    "osvetleni",
    "ohrev",
    "protiproud",
    "uprava_vody",
    "chemie",
    "cisteni",
    "zastreseni",
    "ovladani",
    "sluzby",
    "material",
    "prislusenstvi",
)

_NON_CODE = re.compile(r"[^A-Z0-9]+")
_STEPS = re.compile(r"(\d+)\s*stup", re.IGNORECASE)
_PRACTIC = re.compile(r"practic\s*(\d+)\s*[x×]\s*(\d+)", re.IGNORECASE)
_VA = re.compile(r"\bva\b")


@dataclass(frozen=True)
class CodeParts:
    prefix: str
    suffix: str = ""
    recognized: bool = True

    @property
    def base_code(self) -> str:
        return f"{self.prefix}{self.suffix}"


Rule = Callable[[RawCatalogRecord], CodeParts]
CODE_RULES: Dict[str, Rule] = {}


def _rule(category: str) -> Callable[[Rule], Rule]:
    def register(func: Rule) -> Rule:
        CODE_RULES[category] = func
        return func

    return register


def _lower(record: RawCatalogRecord) -> str:
    return (record.name or "").lower()


def _has(text: str, *tokens: str) -> bool:
    return any(token in text for token in tokens)


def _brand(record: RawCatalogRecord) -> str:
    if not record.brand:
        return ""
    token = _NON_CODE.sub("-", str(record.brand).upper()).strip("-")
    return f"-{token}" if token else ""


def _opt(value: Optional[str], fallback: str = "") -> str:
    return f"-{value}" if value else fallback


def _pool_code(record: RawCatalogRecord, marker: Optional[str]) -> Optional[str]:
    name = _lower(record)
    pool_type = "overflow" if "přeliv" in name else "skimmer"
    if _has(name, "kruh", "ø"):
        values = extract(record.name, "pair")
        dims = dimensions_from_values("circle", pool_type, values) if values else None
    else:
        values = extract(record.name, "dimensions")
        dims = dimensions_from_values("rectangle", pool_type, values) if values else None
    if dims is None:
        return None
    return format_pool_code(dims, marker=marker)


@_rule("bazeny")
def rule_pool(record: RawCatalogRecord) -> CodeParts:
    code = _pool_code(record, None)
    if code is None:
        return CodeParts("BAZ", "-STD")
    return CodeParts(code)


@_rule("sety")
def rule_pool_set(record: RawCatalogRecord) -> CodeParts:
    code = _pool_code(record, SET_MARKER)
    if code is None:
        return CodeParts("SET", "-STD")
    return CodeParts(code)


@_rule("schodiste")
def rule_stairs(record: RawCatalogRecord) -> CodeParts:
    name = _lower(record)
    if "román" in name or "roman" in name:
        suffix = "-ROMAN"
        if "vnější" in name:
            suffix += "-VNEJSI"
        elif "vnitřní" in name:
            suffix += "-VNITR"
        steps = _STEPS.search(record.name)
        if steps:
            suffix += f"-{steps.group(1)}"
        return CodeParts("SCHOD", suffix)
    if "trojúhelník" in name:
        return CodeParts("SCHOD", "-TROJ")
    if "přes" in name and "šíř" in name:
        return CodeParts("SCHOD", "-SIRKA")
    return CodeParts("SCHOD", "-STD")


@_rule("technologie")
def rule_technology(record: RawCatalogRecord) -> CodeParts:
    sub = record.subcategory
    if sub == "filtrace":
        volume = extract_one(record.name, "m3")
        return CodeParts("FILTR", f"-PISK-{volume}" if volume else "-STD")
    if sub == "sachty":
        dims = extract(record.name, "dimensions")
        return CodeParts("SACH", "-" + "-".join(dims) if dims else "-STD")
    if sub == "skimmery":
        litres = extract_one(record.name, "l")
        return CodeParts("SKIM", (f"-{litres}L" if litres else "-STD") + _brand(record))
    if sub == "trysky":
        return CodeParts("TRYS", "-RECIRK")
    return rule_default(record)


@_rule("osvetleni")
def rule_lighting(record: RawCatalogRecord) -> CodeParts:
    name = _lower(record)
    watts = extract_one(record.name, "w")
    if "led" in name:
        suffix = "-LED"
        if "rgb" in name:
            suffix += "-RGB"
        if _VA.search(name):
            suffix += "-VA"
        return CodeParts("SVET", suffix)
    if "halogen" in name:
        return CodeParts("SVET", f"-HAL-{watts or 'STD'}")
    if "transformátor" in name:
        return CodeParts("TRAFO", f"-{watts or 'STD'}")
    return CodeParts("SVET", "-STD")


@_rule("ohrev")
def rule_heating(record: RawCatalogRecord) -> CodeParts:
    name = _lower(record)
    brand = (record.brand or "").upper()
    if record.subcategory == "tepelna_cerpadla":
        kw = extract_one(record.name, "kw") or "X"
        if brand == "NORM":
            return CodeParts("TC", f"-NORM-{kw}")
        if brand == "RAPID":
            return CodeParts("TC", f"-RAPID-{kw}-INV")
        return CodeParts("TC", f"-STD-{kw}" + _brand(record))
    if record.subcategory == "wifi_moduly":
        if "norm" in name:
            return CodeParts("WIFI", "-NORM")
        if "rapid" in name:
            return CodeParts("WIFI", "-RAPID")
        return CodeParts("WIFI", "-TC")
    return CodeParts("OHREV", "-PRIPOJ")


@_rule("protiproud")
def rule_counterflow(record: RawCatalogRecord) -> CodeParts:
    flow = extract_one(record.name, "m3h")
    return CodeParts("PROTIP", _opt(flow, "-STD"))


@_rule("uprava_vody")
def rule_water_treatment(record: RawCatalogRecord) -> CodeParts:
    name = _lower(record)
    sub = record.subcategory
    if sub == "elektrolyza":
        return CodeParts("VODA-ELEK", _brand(record) or "-STD")
    if sub == "uv_lampy":
        watts = extract_one(record.name, "w")
        return CodeParts("VODA-UV", f"-{watts}W" if watts else "-STD")
    if sub == "davkovace":
        if "ph" in name:
            suffix = "-PH"
        elif "orp" in name:
            suffix = "-ORP"
        else:
            suffix = "-STD"
        return CodeParts("VODA-DAVK", suffix + _brand(record))
    return CodeParts("VODA", "-STD")


def _chemical(name: str) -> Optional[tuple]:
    """(suffix, sold by weight) for a chemical product name."""
    if "ph" in name and _has(name, "mínus", "minus", "ph-", "ph -"):
        return "-PH-MINUS", True
    if "ph+" in name or ("ph" in name and "plus" in name):
        return "-PH-PLUS", True
    if "chlornan" in name:
        return "-CHLOR", True
    if "tablety" in name:
        return "-TAB-5V1", True
    if "tester" in name:
        return "-TESTER", False
    if "sůl" in name:
        return "-SUL", True
    if "písek" in name:
        return "-PISEK", True
    if "šok" in name:
        return "-SOK", False
    return None


@_rule("chemie")
def rule_chemicals(record: RawCatalogRecord) -> CodeParts:
    kind = _chemical(_lower(record))
    if kind is None:
        return CodeParts("CHEM", "-STD")
    suffix, weighed = kind
    if weighed:
        suffix += _opt(extract_one(record.name, "kg"))
    return CodeParts("CHEM", suffix)


@_rule("cisteni")
def rule_cleaning(record: RawCatalogRecord) -> CodeParts:
    if record.subcategory == "automaticke":
        return CodeParts("VYSAV", "-AUTO" + _brand(record))
    if record.subcategory == "bateriove":
        return CodeParts("VYSAV", "-BAT" + _brand(record))
    return CodeParts("VYSAV", "-RUCNI")


@_rule("zastreseni")
def rule_roofing(record: RawCatalogRecord) -> CodeParts:
    match = _PRACTIC.search(record.name or "")
    if match:
        return CodeParts("ZASTRE", f"-PRACTIC-{match.group(1)}-{match.group(2)}")
    return CodeParts("ZASTRE", "-PRACTIC")


@_rule("ovladani")
def rule_controls(record: RawCatalogRecord) -> CodeParts:
    name = _lower(record)
    suffix = "-FILTR-SVET"
    if "tepelné čerpadlo" in name:
        suffix += "-TC"
    if "protiproud" in name:
        suffix += "-PROTIP"
    return CodeParts("OVLAD", suffix)


_MONTAGE = (
    (("světel",), "-SVET"),
    (("tepelného",), "-TC"),
    (("protiproud",), "-PROTIP"),
    (("autochlor", "elektrolýz"), "-ELEK"),
    (("uv",), "-UV"),
    (("dávkovač",), "-DAVK"),
    (("zastřešení",), "-ZASTRE"),
)


@_rule("sluzby")
def rule_services(record: RawCatalogRecord) -> CodeParts:
    if record.subcategory == "doprava":
        return CodeParts("SLUZ", "-DOPRAVA-KM")
    name = _lower(record)
    for tokens, suffix in _MONTAGE:
        if _has(name, *tokens):
            return CodeParts("SLUZ", "-MONTAZ" + suffix)
    return CodeParts("SLUZ", "-MONTAZ-ZAKLAD")


def _fitting(record: RawCatalogRecord) -> str:
    name = _lower(record)
    mm = _opt(extract_one(record.name, "mm"))
    if "úhel" in name:
        return f"-UHEL{extract_one(record.name, 'deg') or ''}{mm}"
    if "ventil" in name:
        return ("-VENTIL-ZPET" if "zpětný" in name else "-VENTIL-KUL") + mm
    if "mufna" in name:
        return "-MUFNA" + mm
    if "redukce" in name:
        return "-REDUKCE"
    if "šroubení" in name:
        return "-SROUB"
    if _has(name, "průchodka", "pruchodka"):
        return "-PRUCH"
    if "hadicový trn" in name:
        return "-TRN"
    if "spona" in name:
        return "-SPONA"
    if _has(name, "t kus", '"t"'):
        return "-T"
    return "-STD"


@_rule("material")
def rule_material(record: RawCatalogRecord) -> CodeParts:
    name = _lower(record)
    sub = record.subcategory
    mm = extract_one(record.name, "mm")
    if sub == "pp_desky":
        return CodeParts("MAT-PP", _opt(mm, "-STD") + ("-DEZ" if "dezén" in name else ""))
    if sub == "izolace":
        return CodeParts("MAT-POLYST", _opt(mm, "-STD"))
    if sub == "trubky":
        if "flexi" in name:
            kind = "-FLEXI"
        elif "plovoucí" in name:
            kind = "-PLOV"
        else:
            kind = "-PVC"
        return CodeParts("MAT-TRUB", kind + _opt(mm))
    if sub == "armatury":
        return CodeParts("MAT-ARMAT", _fitting(record))
    if sub == "lepidla":
        prefix = "MAT-CISTIC" if "čistič" in name else "MAT-LEPID"
        return CodeParts(prefix, _opt(extract_one(record.name, "ml"), "-STD"))
    if sub == "prostupy":
        return CodeParts("MAT-PROST", _opt(mm, "-STD"))
    if sub == "lemova_trubka":
        return CodeParts("MAT-LEM", "-TRUBKA")
    if sub == "propojovaci":
        return CodeParts("MAT-PROPOJ", "-SET")
    return CodeParts("MAT", "-STD")


_COLOURS = (("bílá", "-BILA"), ("7032", "-RAL7032"), ("7035", "-RAL7035"), ("7037", "-RAL7037"), ("kombinace", "-KOMBI"))


@_rule("prislusenstvi")
def rule_accessories(record: RawCatalogRecord) -> CodeParts:
    name = _lower(record)
    if "hloubk" in name:
        depth = extract_one(record.name, "depth")
        return CodeParts("MOD", f"-HLOUBKA-{depth}" if depth else "-HLOUBKA")
    if "ostré rohy" in name:
        return CodeParts("MOD", "-OSTRE-ROHY")
    if record.subcategory == "barvy":
        for token, suffix in _COLOURS:
            if token in name:
                return CodeParts("BARVA", suffix)
        return CodeParts("BARVA", "-STD")
    return CodeParts("PRISL", "-STD")


def rule_default(record: RawCatalogRecord) -> CodeParts:
    return CodeParts("JINE", "-STD", recognized=False)


_missing = [category for category in CATEGORIES if category not in CODE_RULES]
if _missing:
    raise RuntimeError(f"Code rules missing for categories: {', '.join(_missing)}")


def resolve_code_parts(record: RawCatalogRecord) -> CodeParts:
    """Dispatch *record* to the rule registered for its category."""

    rule = CODE_RULES.get((record.category or "").strip().lower(), rule_default)
    return rule(record)
