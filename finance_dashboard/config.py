"""Configuration utilities for the finance dashboard.

Provides the default categorization rules and helpers to load user-defined
configuration (custom keyword rules, data directory, aggregator settings)
from a JSON file, with environment variables taking precedence.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .logging_setup import get_logger

logger = get_logger(__name__)

PACKAGE_ROOT = Path(__file__).resolve().parent
PROJECT_ROOT = PACKAGE_ROOT.parent

DEFAULT_CATEGORY = "Overig"
DEFAULT_BASE_URL = "https://bankaccountdata.gocardless.com/api/v2"
MAX_SCHEDULE_DAY = 28

# Keyword-based categorization rules. Declaration order is evaluation order:
# several keywords overlap between categories (e.g. "energie", "geldmaat").
DEFAULT_RULES: Dict[str, List[str]] = {
    "Boodschappen": [
        "albert heijn", "ah to go", "jumbo", "lidl", "aldi", "plus supermarkt",
        "plus berntsen", "dirk", "coop", "spar", "ekoplaza", "vomar",
        "deen", "hoogvliet", "emte", "dekamarkt", "picnic",
    ],
    "Transport": [
        "shell", "esso", "bp", "bp de hucht", "total", "texaco",
        "parkeren", "parking", "park ", "q park",
        "ns ", "ov-chipkaart", "uber", "bolt", "taxi",
        "geldmaat", "benzine", "diesel", "tanken",
    ],
    "Utilities": [
        "ziggo", "vattenfall", "eneco", "nuon", "essent", "kpn",
        "vodafone", "t-mobile", "tele2", "waterbedrijf", "waterleiding",
        "energie", "gas", "elektra", "internet", "telefoon",
    ],
    "Restaurants/Uit eten": [
        "mcdonald", "burger king", "kfc", "domino", "pizza",
        "starbucks", "bagels", "restaurant", "cafe", "bar ",
        "amazing oriental", "zwarte cross", "drift beachclub",
        "brasserie de bank", "luigis", "uitjedak horeca",
        "ijssalon torino", "darras coffee", "bagels beans",
        "goc*zwarte cross", "gerstali", "kok experience",
        "brasserie", "eetcafe", "grand cafe", "lunchroom",
        "ijssalon", "bakkerij", "banket",
    ],
    "Vrije tijd": [
        "bioscoop", "cinema", "netflix", "spotify", "disney",
        "videoland", "pathé", "kinepolis",
        "bol.com", "amazon", "coolblue", "mediamarkt", "wehkamp",
        "hema", "action", "kruidvat", "etos", "bloemen", "blokker",
        "zeeman", "primark", "c&a", "h&m", "zara", "bijenkorf",
    ],
    "Verzekeringen": [
        "verzekering", "insurance", "asr ", "aegon",
        "nationale nederlanden", "nn ", "ditzo",
        "zilveren kruis", "zorgverzekering", "inshared",
        "centraal beheer", "interpolis", "allianz", "reaal",
        "assuradeuren", "gilde",
    ],
    "Wonen": [
        "huur", "rent", "hypotheek", "mortgage", "woningborg",
        "vastgoed", "makelaardij", "woonlasten", "servicekosten",
        "energie", "bouwmarkt", "praxis", "karwei", "gamma", "hornbach",
        "ikea", "kwantum", "jysk", "tuincentrum",
    ],
    "Zorg": [
        "apotheek", "pharmacy", "huisarts", "tandarts",
        "ziekenhuis", "hospital", "fysiotherap", "medisch",
        "dokter", "specialist", "behandeling", "opticien",
        "pearle", "vgz", "menzis", "cz", "uzr",
    ],
    "Inkomen": [
        "salaris", "loon", "salary", "inkomen", "uitkering",
        "belasting teruggave", "toeslagen", "subsidie",
        "belastingdienst", "toeslagenpartner", "svb",
    ],
    "Sparen": [
        "spaar", "saving", "belegg", "investment", "deposito",
        "aandelen", "obligatie", "fonds", "degiro", "binck",
    ],
    "Contant": [
        "geldautomaat", "atm", "pinautomaat", "opname",
        "withdrawal", "geldmaat", "opnemen", "gea,",
    ],
}


@dataclass
class AggregatorSettings:
    base_url: str = DEFAULT_BASE_URL
    token_timeout: float = 15.0
    request_timeout: float = 20.0
    secret_id: Optional[str] = None
    secret_key: Optional[str] = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.secret_id and self.secret_key)


@dataclass
class AppConfig:
    rules: Dict[str, List[str]]
    data_dir: Path = PROJECT_ROOT / "public" / "data"
    static_dir: Path = PROJECT_ROOT / "public"
    aggregator: AggregatorSettings = field(default_factory=AggregatorSettings)
    # Days of the month on which the scheduler triggers a sync.
    schedule_days: Tuple[int, ...] = (1, 15)
    schedule_hour: int = 6
    port: int = 3002

    @staticmethod
    def load(config_path: Optional[str | Path] = None) -> "AppConfig":
        """Load config from JSON if provided, else use defaults.

        JSON format:
        {
          "rules": {"Category": ["keyword1", "keyword2"]},
          "data_dir": "public/data",
          "static_dir": "public",
          "aggregator": {"base_url": "...", "token_timeout": 15, "request_timeout": 20},
          "schedule_days": [1, 15],
          "schedule_hour": 6
        }

        Environment variables override the file: GC_BAD_API,
        FINANCE_DASHBOARD_DATA_DIR, GOCARDLESS_SECRET_ID,
        GOCARDLESS_SECRET_KEY and PORT.
        """

        cfg = AppConfig(rules=DEFAULT_RULES)

        if config_path:
            p = Path(config_path)
            if p.exists():
                with p.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
                if isinstance(raw, dict):
                    _apply_file_settings(cfg, raw, base=p.parent)

        _apply_env_settings(cfg)
        return cfg


def _apply_file_settings(cfg: AppConfig, raw: dict, base: Path) -> None:
    if isinstance(raw.get("rules"), dict):
        # json.load keeps object key order, which is the evaluation order.
        cfg.rules = {
            str(cat): [str(k).lower() for k in (kw or [])]
            for cat, kw in raw["rules"].items()
        }
    if raw.get("data_dir"):
        cfg.data_dir = _resolve(raw["data_dir"], base)
    if raw.get("static_dir"):
        cfg.static_dir = _resolve(raw["static_dir"], base)
    agg = raw.get("aggregator")
    if isinstance(agg, dict):
        if agg.get("base_url"):
            cfg.aggregator.base_url = str(agg["base_url"])
        if agg.get("token_timeout") is not None:
            cfg.aggregator.token_timeout = float(agg["token_timeout"])
        if agg.get("request_timeout") is not None:
            cfg.aggregator.request_timeout = float(agg["request_timeout"])
    if "schedule_days" in raw:
        cfg.schedule_days = _schedule_days(raw["schedule_days"], cfg.schedule_days)
    if raw.get("schedule_hour") is not None:
        cfg.schedule_hour = _schedule_hour(raw["schedule_hour"], cfg.schedule_hour)


def _schedule_days(value: object, default: Tuple[int, ...]) -> Tuple[int, ...]:
    """Days 1..28 from the config; anything else keeps ``default``."""
    days = set()
    if isinstance(value, list):
        for d in value:
            try:
                day = int(d)
            except (TypeError, ValueError):
                logger.warning("ignoring non-numeric schedule day %r", d)
                continue
            if 1 <= day <= MAX_SCHEDULE_DAY:
                days.add(day)
            else:
                logger.warning("ignoring schedule day %d: must be 1..%d", day, MAX_SCHEDULE_DAY)
    if not days:
        logger.warning("no usable schedule_days in config (%r), using %s", value, list(default))
        return default
    return tuple(sorted(days))


def _schedule_hour(value: object, default: int) -> int:
    try:
        hour = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        hour = -1
    if not 0 <= hour <= 23:
        logger.warning("invalid schedule_hour %r, using %d", value, default)
        return default
    return hour


def _apply_env_settings(cfg: AppConfig) -> None:
    base_url = os.getenv("GC_BAD_API")
    if base_url:
        cfg.aggregator.base_url = base_url
    data_dir = os.getenv("FINANCE_DASHBOARD_DATA_DIR")
    if data_dir:
        cfg.data_dir = Path(data_dir)
    cfg.aggregator.secret_id = os.getenv("GOCARDLESS_SECRET_ID") or cfg.aggregator.secret_id
    cfg.aggregator.secret_key = os.getenv("GOCARDLESS_SECRET_KEY") or cfg.aggregator.secret_key
    port = os.getenv("PORT")
    if port and port.isdigit():
        cfg.port = int(port)


def _resolve(value: str, base: Path) -> Path:
    path = Path(value)
    if path.is_absolute():
        return path
    return base / path
