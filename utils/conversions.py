"""
Unit conversion utilities for catchwalk.

Provides barometric altitude and GPS accuracy conversions.
"""

# ISA (International Standard Atmosphere) constants
SEA_LEVEL_PRESSURE_HPA = 1013.25   # hPa
TEMPERATURE_LAPSE_RATE = 0.0065    # K/m
SEA_LEVEL_TEMP_K = 288.15          # K (15°C)
GRAVITY = 9.80665                  # m/s²
MOLAR_MASS_AIR = 0.0289644         # kg/mol
GAS_CONSTANT = 8.31447             # J/(mol·K)

ISA_EXPONENT = (GAS_CONSTANT * TEMPERATURE_LAPSE_RATE) / (GRAVITY * MOLAR_MASS_AIR)

# Typical user equivalent range error for consumer GNSS receivers
DEFAULT_UERE_M = 5.0


# Altitude conversions
def isa_altitude_from_pressure(pressure_hpa, sea_level_hpa=SEA_LEVEL_PRESSURE_HPA):
    """
    Convert barometric pressure to altitude using the ISA model.

    Args:
        pressure_hpa: Measured pressure in hPa
        sea_level_hpa: Reference sea level pressure in hPa

    Returns:
        Altitude in metres above the reference level
    """
    if pressure_hpa <= 0:
        raise ValueError(f"Pressure must be positive, got {pressure_hpa}")
    ratio = pressure_hpa / sea_level_hpa
    return (SEA_LEVEL_TEMP_K / TEMPERATURE_LAPSE_RATE) * (1 - ratio ** ISA_EXPONENT)


# GPS conversions
def hdop_to_accuracy(hdop, uere=DEFAULT_UERE_M):
    """
    Estimate horizontal accuracy in metres from HDOP.

    NMEA receivers report dilution of precision rather than an accuracy
    radius; HDOP * UERE is the usual approximation.
    """
    return hdop * uere
