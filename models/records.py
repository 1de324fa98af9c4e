"""Domain value records shared by the evaluation services."""

from __future__ import annotations

from dataclasses import dataclass

ADC_MAX = 4095


@dataclass(frozen=True, slots=True)
class RawReading:
    """One instantaneous analog sample plus its calibration reference."""

    adc_value: int
    reference_resistance: float
    load_resistance_kohm: float = 10.0
    supply_voltage: float = 3.3


@dataclass(frozen=True, slots=True)
class CurveParams:
    """Log-log sensor response curve: a point (x, y) and its slope."""

    x: float
    y: float
    slope: float


# MQ-7 Rs/Ro versus PPM, approximated from the datasheet.
MQ7_CURVE = CurveParams(x=2.3, y=0.72, slope=-0.34)
