# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Curated component lexicon used before any provider is asked."""

import logging
from dataclasses import dataclass
from typing import Iterable

from cpg.fuzzy import FuzzyIndex

logger = logging.getLogger(__name__)

LEXICON_FUZZY_THRESHOLD: float = 0.7


@dataclass(frozen=True)
class LexiconEntry:
    """Represent one known component and its object part code.

    Attributes:
        component_name: Canonical component name.
        object_part_code: Four-character code.
        variations: Accepted alternative spellings.
    """

    component_name: str
    object_part_code: str
    variations: tuple[str, ...] = ()


@dataclass(frozen=True)
class LexiconMatch:
    """Represent a lexicon hit with its confidence."""

    entry: LexiconEntry
    confidence: float
    exact: bool


COMPONENT_LEXICON: tuple[LexiconEntry, ...] = (
    LexiconEntry("Bearing", "BRNG", ("Bearings", "Brg", "Ball Bearing")),
    LexiconEntry("Seal", "SEAL", ("Seals", "Lip Seal")),
    LexiconEntry("Shaft", "SHFT", ("Shafts", "Drive Shaft", "Spindle")),
    LexiconEntry("Impeller", "IMPL", ("Impellers", "Runner")),
    LexiconEntry("Motor", "MOTR", ("Electric Motor", "Drive Motor")),
    LexiconEntry("Pump", "PUMP", ("Pumps", "Pump Unit")),
    LexiconEntry("Valve", "VALV", ("Valves", "Control Valve")),
    LexiconEntry("Gearbox", "GRBX", ("Gear Box", "Reducer", "Gear Reducer")),
    LexiconEntry("Coupling", "CPLG", ("Couplings", "Shaft Coupling")),
    LexiconEntry("Belt", "BELT", ("Belts", "Drive Belt", "V-Belt")),
    LexiconEntry("Pulley", "PULY", ("Pulleys", "Sheave")),
    LexiconEntry("Fan", "FAN0", ("Fans", "Cooling Fan")),
    LexiconEntry("Filter", "FLTR", ("Filters", "Strainer")),
    LexiconEntry("Hose", "HOSE", ("Hoses", "Flexible Hose")),
    LexiconEntry("Pipe", "PIPE", ("Piping", "Pipework")),
    LexiconEntry("Gasket", "GSKT", ("Gaskets",)),
    LexiconEntry("Sensor", "SNSR", ("Sensors", "Transmitter", "Probe")),
    LexiconEntry("Switch", "SWCH", ("Switches", "Limit Switch")),
    LexiconEntry("Cable", "CABL", ("Cables", "Power Cable")),
    LexiconEntry("Relay", "RLAY", ("Relays",)),
    LexiconEntry("Fuse", "FUSE", ("Fuses",)),
    LexiconEntry("Circuit Breaker", "CBRK", ("Breaker", "MCB")),
    LexiconEntry("Contactor", "CNTC", ("Contactors",)),
    LexiconEntry("Transformer", "TRFM", ("Transformers",)),
    LexiconEntry("Battery", "BATT", ("Batteries",)),
    LexiconEntry("Housing", "HSNG", ("Casing", "Enclosure")),
    LexiconEntry("Nozzle", "NOZL", ("Nozzles", "Spray Nozzle")),
    LexiconEntry("Piston", "PSTN", ("Pistons",)),
    LexiconEntry("Cylinder", "CYLN", ("Cylinders", "Hydraulic Cylinder")),
    LexiconEntry("Spring", "SPRG", ("Springs",)),
    LexiconEntry("Bolt", "BOLT", ("Bolts", "Fastener")),
    LexiconEntry("Chain", "CHAN", ("Chains", "Drive Chain")),
    LexiconEntry("Sprocket", "SPRK", ("Sprockets",)),
    LexiconEntry("Roller", "ROLR", ("Rollers", "Idler")),
    LexiconEntry("Brake", "BRKE", ("Brakes", "Brake Pad")),
    LexiconEntry("Clutch", "CLCH", ("Clutches",)),
    LexiconEntry("Actuator", "ACTR", ("Actuators",)),
    LexiconEntry("Controller", "CTRL", ("PLC", "Control Unit")),
    LexiconEntry("Terminal", "TERM", ("Terminals", "Terminal Block")),
    LexiconEntry("Rotor", "ROTR", ("Rotors",)),
    LexiconEntry("Stator", "STTR", ("Stators",)),
    LexiconEntry("Winding", "WNDG", ("Windings", "Motor Winding")),
    LexiconEntry("Mechanical Seal", "MSEL", ("Mech Seal",)),
    LexiconEntry("O-Ring", "ORNG", ("O Ring", "Oring")),
    LexiconEntry("Wear Ring", "WRNG", ("Wear Rings",)),
    LexiconEntry("Heat Exchanger", "HTEX", ("Cooler", "Heat Exch")),
    LexiconEntry("Tank", "TANK", ("Vessel", "Reservoir")),
    LexiconEntry("Arm", "ARM0", ("Arms",)),
)


class Lexicon:
    """Look up component codes by exact and fuzzy name matching."""

    def __init__(
        self,
        entries: Iterable[LexiconEntry] = COMPONENT_LEXICON,
        fuzzy_threshold: float = LEXICON_FUZZY_THRESHOLD,
    ) -> None:
        """Initialize the lexicon.

        Args:
            entries: Known components.
            fuzzy_threshold: Exclusive distance below which a fuzzy hit is used.
        """
        self._entries = tuple(entries)
        self._fuzzy_threshold = fuzzy_threshold
        self._index = FuzzyIndex(
            self._entries,
            keys=lambda entry: (entry.component_name, *entry.variations),
        )

    @property
    def entries(self) -> tuple[LexiconEntry, ...]:
        """Return the known components."""
        return self._entries

    def exact(self, component_name: str) -> LexiconMatch | None:
        """Match a name or variation ignoring case."""
        wanted = component_name.casefold()
        for entry in self._entries:
            names = (entry.component_name, *entry.variations)
            if any(name.casefold() == wanted for name in names):
                return LexiconMatch(entry=entry, confidence=1.0, exact=True)
        return None

    def fuzzy(self, component_name: str) -> LexiconMatch | None:
        """Return the closest entry when it is below the fuzzy threshold."""
        hits = self._index.search(component_name)
        if not hits or hits[0].score >= self._fuzzy_threshold:
            return None
        best = hits[0]
        logger.info(
            f"Lexicon fuzzy match (component={component_name!r} "
            f"match={best.item.component_name!r} score={best.score:.3f})"
        )
        return LexiconMatch(entry=best.item, confidence=1.0 - best.score, exact=False)

    def lookup(self, component_name: str) -> LexiconMatch | None:
        """Try the exact match first, then the fuzzy match."""
        return self.exact(component_name) or self.fuzzy(component_name)

    def examples(self, limit: int = 8) -> list[str]:
        """Return ``name -> code`` lines used as prompt examples."""
        return [
            f"{entry.component_name} -> {entry.object_part_code}"
            for entry in self._entries[:limit]
        ]
