"""Convert raw MQ-7 / MQ-135 ADC samples into physical concentrations."""

from __future__ import annotations

import math
from typing import Optional

from models.records import ADC_MAX, MQ7_CURVE, CurveParams, RawReading

CO_PPM_MAX = 1000.0
AQI_MAX = 500.0
_AQI_SCALE = 625.0
# log10(CO_PPM_MAX); larger exponents are clamped before exponentiation.
_CO_EXPONENT_CAP = 3.0


def _sensor_resistance(reading: RawReading) -> Optional[float]:
    """Return Rs in kOhm, ``None`` for invalid input, or ``0.0`` when saturated."""
    adc = reading.adc_value
    ro = reading.reference_resistance
    if not 0 <= adc <= ADC_MAX:
        return None
    if not ro > 0:
        return None

    voltage = (adc / ADC_MAX) * reading.supply_voltage
    if voltage <= 0:
        return None

    rl = reading.load_resistance_kohm
    rs = (reading.supply_voltage * rl / voltage) - rl
    return rs if rs > 0 else 0.0


def estimate_concentration(
    reading: RawReading, curve: CurveParams = MQ7_CURVE
) -> float:
    """Invert the sensor response curve to get a CO concentration in PPM.

    Invalid readings yield ``0.0``; a saturated sensor yields the top of the
    range. The result is always within ``[0, 1000]``.
    """
    rs = _sensor_resistance(reading)
    if rs is None:
        return 0.0
    if rs == 0.0:
        return CO_PPM_MAX

    ratio = rs / reading.reference_resistance
    if ratio <= 0:
        return CO_PPM_MAX
    exponent = ((math.log10(ratio) - curve.y) / curve.slope) + curve.x
    ppm = 10 ** min(exponent, _CO_EXPONENT_CAP)
    return max(0.0, min(CO_PPM_MAX, ppm))


def estimate_aqi(reading: RawReading) -> float:
    """Map the Rs/Ro ratio linearly onto a 0-500 index.

    Clean air (ratio ~1.0) scores 0, heavy pollution (ratio ~0.2) scores 500.
    This is a simplified proxy and not the EPA AQI formula.
    """
    rs = _sensor_resistance(reading)
    if rs is None:
        return 0.0
    if rs == 0.0:
        return AQI_MAX

    ratio = rs / reading.reference_resistance
    aqi = math.floor((1 - min(ratio, 1.0)) * _AQI_SCALE + 0.5)
    return float(max(0.0, min(AQI_MAX, aqi)))


def calculate_co_ppm(
    raw_adc: float,
    ro: float,
    load_resistance: float = 10.0,
    v_ref: float = 3.3,
) -> float:
    return estimate_concentration(
        RawReading(
            adc_value=raw_adc,
            reference_resistance=ro,
            load_resistance_kohm=load_resistance,
            supply_voltage=v_ref,
        )
    )


def calculate_aqi(
    raw_adc: float,
    ro: float,
    load_resistance: float = 10.0,
    v_ref: float = 3.3,
) -> float:
    return estimate_aqi(
        RawReading(
            adc_value=raw_adc,
            reference_resistance=ro,
            load_resistance_kohm=load_resistance,
            supply_voltage=v_ref,
        )
    )
