"""Performance estimator and stock-figure heuristics.

``predict`` turns a base vehicle plus an ordered list of modifications into
estimated horsepower, torque, weight, power-to-weight, 0-60 and quarter-mile
times. Power gains see diminishing returns: the first gain-producing mod
applies in full, the second at 0.9, and each one after that at 0.95 of the
previous multiplier.

When the ``cars`` row is missing figures, the heuristics below fill them in:
horsepower from the nameplate, curb weight from the body style, and
acceleration times from power-to-weight with drivetrain efficiency and
launch-traction factors.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Sequence

from modcalc.core.enums import BodyStyle, Drivetrain
from modcalc.models.modification import Modification
from modcalc.models.prediction import PredictionResult
from modcalc.models.vehicle import Vehicle
from modcalc.utils.converters import round_half_up

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

FIRST_DIMINISHED_FACTOR: float = 0.9  # multiplier for the 2nd gain-producing mod
DIMINISHING_DECAY: float = 0.95  # applied per gain-producing mod after that

MIN_WEIGHT_LBS: float = 1.0

# Drivetrain loss: share of crank horsepower that reaches the ground
DRIVETRAIN_EFFICIENCY: dict[Drivetrain, float] = {
    Drivetrain.FWD: 0.88,
    Drivetrain.RWD: 0.85,
    Drivetrain.AWD: 0.80,
}

# Multiplier on time-to-speed; AWD launches harder, FWD spins the fronts
LAUNCH_FACTOR: dict[Drivetrain, float] = {
    Drivetrain.FWD: 1.10,
    Drivetrain.RWD: 1.00,
    Drivetrain.AWD: 0.90,
}

ZERO_TO_SIXTY_COEFF: float = 0.77
ZERO_TO_SIXTY_EXPONENT: float = 0.75
MIN_ZERO_TO_SIXTY_S: float = 1.8

# Hale's ET formula (5.825 * (lb/hp)^(1/3)) rebased onto wheel horsepower
QUARTER_MILE_COEFF: float = 5.52
QUARTER_MILE_EXPONENT: float = 1.0 / 3.0
MIN_QUARTER_MILE_S: float = 7.0

DEFAULT_STOCK_HP: float = 180.0
TORQUE_PER_HP: float = 0.9
HP_PER_LITRE_NA: float = 80.0
HP_PER_LITRE_TURBO: float = 120.0

# (pattern, stock hp, stock lb-ft); matched against "make model trim",
# most specific first
NAMEPLATE_SPECS: list[tuple[re.Pattern[str], float, float]] = [
    (re.compile(r"\bgt-?r\b"), 565, 467),
    (re.compile(r"\bhellcat\b"), 717, 656),
    (re.compile(r"\bcorvette\b"), 490, 465),
    (re.compile(r"\bcamaro\b.*\bss\b"), 455, 455),
    (re.compile(r"\bmustang\b.*\bgt\b"), 480, 415),
    (re.compile(r"\bmustang\b"), 310, 350),
    (re.compile(r"\bm[34]\b"), 473, 406),
    (re.compile(r"\bm2\b"), 453, 406),
    (re.compile(r"\bsupra\b"), 382, 368),
    (re.compile(r"\b(?:wrx\s+)?sti\b"), 305, 290),
    (re.compile(r"\bwrx\b"), 271, 258),
    (re.compile(r"\btype[\s-]?r\b"), 315, 310),
    (re.compile(r"\bcivic\b.*\bsi\b"), 200, 192),
    (re.compile(r"\bs2000\b"), 237, 162),
    (re.compile(r"\bgolf\s+r\b(?!-)"), 315, 295),
    (re.compile(r"\bgti\b"), 241, 273),
    (re.compile(r"\bfocus\b.*\brs\b"), 350, 350),
    (re.compile(r"\bfocus\b.*\bst\b"), 252, 270),
    (re.compile(r"\bevo(?:lution)?\b"), 291, 300),
    (re.compile(r"\b(?:gr)?86\b|\bbrz\b"), 228, 184),
    (re.compile(r"\b(?:mx-?5|miata)\b"), 181, 151),
    (re.compile(r"\b400z\b"), 400, 350),
    (re.compile(r"\b370z\b"), 332, 270),
    (re.compile(r"\b350z\b"), 287, 274),
    (re.compile(r"\bmodel\s+3\b.*\bperformance\b"), 510, 487),
]

DISPLACEMENT_RE = re.compile(
    r"\b(\d\.\d)\s*(tfsi|tsi|turbo|liter|litre|t|l)?\b", re.IGNORECASE
)
TURBO_RE = re.compile(
    r"\b(?:turbo|biturbo|twin[\s-]?turbo|ecoboost|tsi|tfsi|\d\.\d\s*t)\b",
    re.IGNORECASE,
)

# (pattern, body style); matched against "make model trim", first hit wins
BODY_STYLE_PATTERNS: list[tuple[re.Pattern[str], BodyStyle]] = [
    (
        re.compile(
            r"\b(?:pickup|truck|crew\s*cab|double\s*cab|f-?[1-3]50|silverado|sierra"
            r"|ram|tacoma|tundra|ranger|colorado|canyon|frontier|ridgeline|titan"
            r"|gladiator|maverick)\b"
        ),
        BodyStyle.TRUCK,
    ),
    (
        re.compile(
            r"\b(?:van|minivan|odyssey|sienna|pacifica|carnival|transit|sprinter)\b"
        ),
        BodyStyle.VAN,
    ),
    (
        re.compile(
            r"\b(?:suv|crossover|cr-?v|rav4|highlander|4runner|explorer|escape|edge"
            r"|rogue|pathfinder|outback|forester|pilot|cx-?\d+|tahoe|suburban"
            r"|expedition|wrangler|bronco|durango|cherokee|macan|cayenne|x[3-7]"
            r"|q[3-8]|telluride|sorento|palisade|tucson|model\s+[xy])\b"
        ),
        BodyStyle.SUV,
    ),
    (
        re.compile(r"\b(?:wagon|estate|avant|sportwagen|allroad|shooting\s+brake)\b"),
        BodyStyle.WAGON,
    ),
    (
        re.compile(
            r"\b(?:convertible|cabrio(?:let)?|roadster|spyder|spider|miata|mx-?5"
            r"|s2000|boxster|z4)\b"
        ),
        BodyStyle.CONVERTIBLE,
    ),
    (
        re.compile(
            r"\b(?:hatch(?:back)?|5-?door|golf|gti|fit|yaris|fiesta|focus|veloster"
            r"|impreza|type[\s-]?r|cooper|mini)\b"
        ),
        BodyStyle.HATCHBACK,
    ),
    (
        re.compile(
            r"\b(?:coupe|coupé|2-?door|brz|(?:gr)?86|supra|mustang|camaro|challenger"
            r"|corvette|[34]00z|3[57]0z|gt-?r|m2|m4)\b"
        ),
        BodyStyle.COUPE,
    ),
]

CURB_WEIGHT_BY_BODY_STYLE: dict[BodyStyle, float] = {
    BodyStyle.TRUCK: 4800,
    BodyStyle.VAN: 4500,
    BodyStyle.SUV: 4300,
    BodyStyle.WAGON: 3600,
    BodyStyle.SEDAN: 3300,
    BodyStyle.COUPE: 3400,
    BodyStyle.HATCHBACK: 3000,
    BodyStyle.CONVERTIBLE: 2700,
}

# =============================================================================
# Stock Figure Heuristics
# =============================================================================


def _nameplate_text(make: str | None, model: str | None, trim: str | None) -> str:
    return " ".join(p for p in (make, model, trim) if p).lower()


def _match_nameplate(
    make: str | None, model: str | None, trim: str | None
) -> tuple[float, float] | None:
    text = _nameplate_text(make, model, trim)
    for pattern, hp, tq in NAMEPLATE_SPECS:
        if pattern.search(text):
            return float(hp), float(tq)
    return None


def estimate_hp_from_displacement(model: str | None, trim: str | None) -> float | None:
    """Estimate horsepower from a displacement token like "2.0T" or "5.0L"."""
    text = " ".join(p for p in (model, trim) if p)
    m = DISPLACEMENT_RE.search(text)
    if not m:
        return None
    litres = float(m.group(1))
    if not 0.6 <= litres <= 8.5:
        return None
    suffix = (m.group(2) or "").lower()
    turbo = suffix in {"t", "tsi", "tfsi", "turbo"} or bool(TURBO_RE.search(text))
    per_litre = HP_PER_LITRE_TURBO if turbo else HP_PER_LITRE_NA
    return round(litres * per_litre)


def estimate_stock_hp(
    make: str | None, model: str | None, trim: str | None = None
) -> float:
    """Estimate stock horsepower when the ``cars`` row has none.

    Nameplate table first, then engine displacement, then a generic default.
    """
    nameplate = _match_nameplate(make, model, trim)
    if nameplate:
        return nameplate[0]
    by_displacement = estimate_hp_from_displacement(model, trim)
    if by_displacement:
        return by_displacement
    return DEFAULT_STOCK_HP


def estimate_stock_tq(
    hp: float,
    make: str | None = None,
    model: str | None = None,
    trim: str | None = None,
) -> float:
    """Estimate stock torque: nameplate value when known, else 0.9 lb-ft per hp."""
    nameplate = _match_nameplate(make, model, trim)
    if nameplate:
        return nameplate[1]
    return round(hp * TORQUE_PER_HP)


def classify_body_style(
    make: str | None,
    model: str | None,
    trim: str | None = None,
    body_style: str | None = None,
) -> BodyStyle:
    """Resolve a body style from an explicit value or the nameplate text."""
    explicit = BodyStyle.from_string(body_style)
    if explicit:
        return explicit
    text = _nameplate_text(make, model, trim)
    for pattern, style in BODY_STYLE_PATTERNS:
        if pattern.search(text):
            return style
    return BodyStyle.SEDAN


def estimate_curb_weight(
    make: str | None,
    model: str | None,
    trim: str | None = None,
    body_style: str | None = None,
) -> float:
    """Typical curb weight (lb) for the vehicle's body style."""
    style = classify_body_style(make, model, trim, body_style)
    return CURB_WEIGHT_BY_BODY_STYLE[style]


def drivetrain_efficiency(drivetrain: str | None) -> float:
    """Drivetrain efficiency; anything unrecognized gets the RWD value."""
    dt = Drivetrain.from_string(drivetrain) or Drivetrain.RWD
    return DRIVETRAIN_EFFICIENCY[dt]


def launch_factor(drivetrain: str | None) -> float:
    """Launch-traction multiplier on times; unrecognized gets the RWD value."""
    dt = Drivetrain.from_string(drivetrain) or Drivetrain.RWD
    return LAUNCH_FACTOR[dt]


def _lb_per_wheel_hp(hp: float, weight: float, drivetrain: str | None) -> float:
    wheel_hp = max(hp, 1.0) * drivetrain_efficiency(drivetrain)
    return max(weight, MIN_WEIGHT_LBS) / wheel_hp


def estimate_zero_to_sixty(hp: float, weight: float, drivetrain: str | None) -> float:
    """Empirical 0-60 mph time (s) from weight per wheel horsepower."""
    ratio = _lb_per_wheel_hp(hp, weight, drivetrain)
    t = ZERO_TO_SIXTY_COEFF * ratio**ZERO_TO_SIXTY_EXPONENT * launch_factor(drivetrain)
    return max(t, MIN_ZERO_TO_SIXTY_S)


def estimate_quarter_mile(hp: float, weight: float, drivetrain: str | None) -> float:
    """Empirical quarter-mile ET (s) from weight per wheel horsepower."""
    ratio = _lb_per_wheel_hp(hp, weight, drivetrain)
    # Launch matters less over 1320 ft than over 60 mph
    t = QUARTER_MILE_COEFF * ratio**QUARTER_MILE_EXPONENT * math.sqrt(
        launch_factor(drivetrain)
    )
    return max(t, MIN_QUARTER_MILE_S)


# =============================================================================
# Estimator
# =============================================================================


@dataclass
class StockFigures:
    """Base figures for a vehicle with any gaps filled by heuristics."""

    hp: float
    tq: float
    weight: float
    zero_to_sixty: float | None
    quarter_mile: float | None
    notes: list[str] = field(default_factory=list)


def resolve_stock_figures(vehicle: Vehicle) -> StockFigures:
    """Fill missing stock horsepower, torque and curb weight."""
    notes: list[str] = []

    hp = vehicle.stock_hp
    if hp is None:
        hp = estimate_stock_hp(vehicle.make, vehicle.model, vehicle.trim)
        notes.append(
            f"Stock horsepower not on file; estimated {hp:.0f} hp from the nameplate."
        )

    tq = vehicle.stock_tq
    if tq is None:
        tq = estimate_stock_tq(hp, vehicle.make, vehicle.model, vehicle.trim)
        notes.append(f"Stock torque not on file; estimated {tq:.0f} lb-ft.")

    weight = vehicle.curb_weight_lbs
    if weight is None:
        style = classify_body_style(
            vehicle.make, vehicle.model, vehicle.trim, vehicle.body_style
        )
        weight = estimate_curb_weight(vehicle.make, vehicle.model, vehicle.trim, style)
        notes.append(
            f"Curb weight not on file; estimated {weight:.0f} lb for a typical "
            f"{style.value}."
        )

    if notes:
        logger.debug("Estimated stock figures for car %s: %s", vehicle.id, notes)

    return StockFigures(
        hp=hp,
        tq=tq,
        weight=weight,
        zero_to_sixty=vehicle.zero_to_sixty_s,
        quarter_mile=vehicle.quarter_mile_s,
        notes=notes,
    )


def gain_multiplier(index: int) -> float:
    """Multiplier for the ``index``-th (0-based) gain-producing modification."""
    if index <= 0:
        return 1.0
    return FIRST_DIMINISHED_FACTOR * DIMINISHING_DECAY ** (index - 1)


def predict(vehicle: Vehicle, mods: Sequence[Modification]) -> PredictionResult:
    """Estimate performance for ``vehicle`` with ``mods`` applied in order."""
    stock = resolve_stock_figures(vehicle)
    notes = list(stock.notes)

    hp = stock.hp
    tq = stock.tq
    weight = stock.weight
    gain_mods = 0

    for mod in mods:
        weight += mod.avg_weight_delta_lbs
        if mod.is_gain_producing:
            factor = gain_multiplier(gain_mods)
            hp += round_half_up(mod.avg_hp_gain * factor)
            tq += round_half_up(mod.avg_tq_gain * factor)
            gain_mods += 1
        if mod.needs_tune:
            notes.append(f"{mod.name} typically benefits most with a tune.")

    weight = max(weight, MIN_WEIGHT_LBS)
    effective_hp = max(hp, 1.0)
    power_to_weight = hp / weight

    if stock.zero_to_sixty is not None:
        zero_to_sixty = (
            stock.zero_to_sixty * (stock.hp / effective_hp) * (weight / stock.weight)
        )
    else:
        zero_to_sixty = estimate_zero_to_sixty(hp, weight, vehicle.drivetrain)

    if stock.quarter_mile is not None:
        quarter_mile = stock.quarter_mile * math.sqrt(
            (stock.weight / weight) * (stock.hp / effective_hp)
        )
    else:
        quarter_mile = estimate_quarter_mile(hp, weight, vehicle.drivetrain)

    if stock.zero_to_sixty is None and stock.quarter_mile is None:
        notes.append(
            "No stock acceleration times on file; times are estimated from "
            "power-to-weight."
        )
    elif stock.zero_to_sixty is None:
        notes.append(
            "No stock 0-60 time on file; 0-60 is estimated from power-to-weight."
        )
    elif stock.quarter_mile is None:
        notes.append(
            "No stock quarter-mile time on file; quarter mile is estimated from "
            "power-to-weight."
        )

    return PredictionResult(
        estimated_hp=round_half_up(hp),
        estimated_tq=round_half_up(tq),
        estimated_weight=round_half_up(weight),
        power_to_weight=power_to_weight,
        zero_to_sixty=round(zero_to_sixty, 2),
        quarter_mile=round(quarter_mile, 2),
        notes=notes,
    )
