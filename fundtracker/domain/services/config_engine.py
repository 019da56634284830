"""
CONFIG ENGINE
Load, validate, and persist portfolio definitions

RESPONSIBILITIES:
- Load portfolios.yml (holdings + weighting per portfolio)
- Validate configuration integrity
- Expose read-only typed objects
- Write a single portfolio back after price/weight edits

RULES:
✅ Fail fast on invalid config
✅ Deterministic output (portfolios kept in file order)
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml

from fundtracker.domain.models import (
    AssetKind,
    BASE_CURRENCY,
    Currency,
    Holding,
    PortfolioConfig,
    WeightConfig,
    classify_code,
)
from fundtracker.utils.numbers import parse_turkish_float

logger = logging.getLogger(__name__)

PORTFOLIO_FILE = "portfolios.yml"


@dataclass(frozen=True)
class PortfolioUniverse:
    """Collection of all configured portfolios"""
    portfolios: List[PortfolioConfig]
    codes: List[str]

    def get_portfolio(self, code: str) -> PortfolioConfig:
        """Get portfolio by code (case-insensitive)"""
        wanted = code.strip().upper()
        for portfolio in self.portfolios:
            if portfolio.code.upper() == wanted:
                return portfolio
        raise ValueError(f"Portfolio not found: {code}")

    def is_valid_code(self, code: str) -> bool:
        return code.strip().upper() in {c.upper() for c in self.codes}


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for portfolio definitions
    """

    def __init__(self, config_dir: Path):
        """Initialize with config directory"""
        self.config_dir = Path(config_dir)
        self._universe: PortfolioUniverse = None
        self._raw: Dict[str, Any] = None
        self._lock = threading.Lock()

    @property
    def portfolio_file(self) -> Path:
        return self.config_dir / PORTFOLIO_FILE

    def load_all(self) -> None:
        """Load all configuration files"""
        self._load_portfolios()
        self._validate_all()

    def _load_portfolios(self) -> None:
        """Load portfolio definitions from portfolios.yml"""
        if not self.portfolio_file.exists():
            raise FileNotFoundError(f"Portfolio config not found: {self.portfolio_file}")

        with open(self.portfolio_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        portfolios = [self._parse_portfolio(entry) for entry in data.get("portfolios", [])]
        codes = [p.code for p in portfolios]

        # Check for duplicates
        if len({c.upper() for c in codes}) != len(codes):
            raise ValueError("Duplicate portfolio codes found in configuration")

        self._raw = data
        self._universe = PortfolioUniverse(portfolios=portfolios, codes=codes)
        logger.info("Loaded %d portfolios from %s", len(portfolios), self.portfolio_file)

    def _validate_all(self) -> None:
        """Validate loaded portfolios"""
        for portfolio in self._universe.portfolios:
            weights = portfolio.weights
            if not 0 <= weights.stock_weight <= 1:
                raise ValueError(
                    f"{portfolio.code}: multiplier must be within [0, 1], got {weights.stock_weight}"
                )
            if weights.ppf_weight is not None and not 0 <= weights.ppf_weight <= 1:
                raise ValueError(
                    f"{portfolio.code}: ppf_weight must be within [0, 1], got {weights.ppf_weight}"
                )
            for holding in portfolio.holdings:
                if holding.quantity < 0:
                    raise ValueError(f"{portfolio.code}/{holding.code}: negative quantity")

    # ------------------------------------------------------------------
    # PARSING
    # ------------------------------------------------------------------

    def _parse_portfolio(self, entry: Dict[str, Any]) -> PortfolioConfig:
        code = str(entry["code"]).strip()
        holdings = tuple(self._parse_holding(code, h) for h in entry.get("holdings", []))
        weights = WeightConfig.from_raw(
            multiplier=entry.get("multiplier"),
            ppf_rate=entry.get("ppf_rate"),
            ppf_weight=entry.get("ppf_weight"),
            gyf_rate=entry.get("gyf_rate"),
        )
        return PortfolioConfig(
            code=code,
            name=str(entry.get("name") or code),
            holdings=holdings,
            weights=weights,
        )

    @staticmethod
    def _parse_holding(portfolio_code: str, entry: Dict[str, Any]) -> Holding:
        currency = Currency.parse(entry.get("currency", BASE_CURRENCY.value))
        if currency is None:
            raise ValueError(
                f"{portfolio_code}/{entry.get('code')}: unsupported currency {entry.get('currency')}"
            )

        code = str(entry["code"]).strip()
        default_kind = classify_code(code, is_foreign=currency != BASE_CURRENCY)
        kind = AssetKind(entry["kind"]) if entry.get("kind") else default_kind

        return Holding(
            code=code,
            quantity=parse_turkish_float(entry.get("quantity")) or 0.0,
            current_price=parse_turkish_float(entry.get("current_price")) or 0.0,
            cost=parse_turkish_float(entry.get("cost")) or 0.0,
            currency=currency,
            is_manual=bool(entry.get("is_manual", False)),
            kind=kind,
        )

    # ------------------------------------------------------------------
    # WRITE BACK
    # ------------------------------------------------------------------

    def save_portfolio(self, portfolio: PortfolioConfig) -> None:
        """
        Replace (or append) one portfolio in portfolios.yml and reload.
        """
        with self._lock:
            if self._raw is None:
                self._load_portfolios()

            entries = list(self._raw.get("portfolios", []))
            serialized = self._serialize_portfolio(portfolio)
            for idx, entry in enumerate(entries):
                if str(entry.get("code", "")).upper() == portfolio.code.upper():
                    entries[idx] = serialized
                    break
            else:
                entries.append(serialized)

            data = dict(self._raw)
            data["portfolios"] = entries
            tmp_file = self.portfolio_file.with_suffix(".yml.tmp")
            with open(tmp_file, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
            tmp_file.replace(self.portfolio_file)

            self.load_all()
        logger.info("Saved portfolio %s", portfolio.code)

    @staticmethod
    def _serialize_portfolio(portfolio: PortfolioConfig) -> Dict[str, Any]:
        weights = portfolio.weights
        return {
            "code": portfolio.code,
            "name": portfolio.name,
            "multiplier": weights.stock_weight,
            "ppf_rate": weights.ppf_rate,
            "ppf_weight": weights.ppf_weight,
            "gyf_rate": weights.gyf_rate,
            "holdings": [
                {
                    "code": h.code,
                    "quantity": h.quantity,
                    "current_price": h.current_price,
                    "cost": h.cost,
                    "currency": h.currency.value,
                    "is_manual": h.is_manual,
                    "kind": h.kind.value,
                }
                for h in portfolio.holdings
            ],
        }

    # ------------------------------------------------------------------
    # ACCESSORS
    # ------------------------------------------------------------------

    @property
    def universe(self) -> PortfolioUniverse:
        if self._universe is None:
            raise RuntimeError("Configuration not loaded; call load_all() first")
        return self._universe

    def get_portfolio(self, code: str) -> PortfolioConfig:
        return self.universe.get_portfolio(code)

    @property
    def portfolios(self) -> List[PortfolioConfig]:
        return list(self.universe.portfolios)
