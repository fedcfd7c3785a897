"""
Derived-value calculations for HVAC qualification tests.

Unit convention:
    flow rates are m³/h (air_flow_rate per filter, total_flow_rate per room),
    volume is m³, so air_change_rate = total_flow_rate / volume in 1/h.
    A zero volume has no defined air-change rate and yields None.
"""

import math
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from ..schemas.hvac_report import AirflowData, ParticleCountData

SECONDS_PER_HOUR = 3600
MM_PER_M = 1000

# ISO 14644-1 class limits for particles >= 0.5 µm, per m³
ISO_CLASS_LIMITS_05UM = {
    2: 4,
    3: 35,
    4: 352,
    5: 3_520,
    6: 35_200,
    7: 352_000,
    8: 3_520_000,
    9: 35_200_000,
}


def round_display(value: float, digits: int = 2) -> float:
    return round(value, digits)


def calculate_room_volume(surface_area: float, height: float) -> float:
    """Room volume in m³; negative inputs count as zero"""
    return max(surface_area, 0.0) * max(height, 0.0)


def calculate_air_flow_rate(speed: float, filter_x_mm: float, filter_y_mm: float) -> float:
    """Flow rate through one filter in m³/h from face velocity and filter size"""
    area_m2 = (filter_x_mm / MM_PER_M) * (filter_y_mm / MM_PER_M)
    return round_display(speed * area_m2 * SECONDS_PER_HOUR)


def calculate_total_flow_rate(flow_rate: float, filter_count: int) -> float:
    return flow_rate * max(filter_count, 1)


def calculate_air_change_rate(total_flow_rate: float, room_volume: float) -> Optional[float]:
    """Air changes per hour, or None when the room volume is zero"""
    if room_volume <= 0:
        return None
    return total_flow_rate / room_volume


def apply_airflow_derivations(data: "AirflowData", room_volume: float) -> "AirflowData":
    """
    Return a copy of the airflow payload with every derived field recomputed.
    The measured flow_rate is never overwritten.
    """
    air_flow_rate = data.flow_rate
    if air_flow_rate is None:
        air_flow_rate = calculate_air_flow_rate(
            data.speed, data.filter_dimension_x, data.filter_dimension_y
        )

    total_flow_rate = calculate_total_flow_rate(air_flow_rate, data.filter_count)
    return data.model_copy(
        update={
            "air_flow_rate": air_flow_rate,
            "total_flow_rate": total_flow_rate,
            "air_change_rate": calculate_air_change_rate(total_flow_rate, room_volume),
        }
    )


def calculate_sampling_points(surface_area: float) -> int:
    """Minimum number of sampling locations per ISO 14644-1 (at least 4)"""
    if surface_area <= 0:
        return 4
    return max(4, round(math.sqrt(10 * surface_area)))


def calculate_particle_average(measurements: Iterable[float]) -> float:
    values = list(measurements)
    if not values:
        return 0.0
    return sum(values) / len(values)


def determine_iso_class(average_particles: float) -> Optional[int]:
    """
    Cleanest ISO 14644-1 class whose 0.5 µm limit the average satisfies.
    Returns None when the count exceeds the ISO 9 limit.
    """
    for iso_class, limit in sorted(ISO_CLASS_LIMITS_05UM.items()):
        if average_particles <= limit:
            return iso_class
    return None


def apply_particle_derivations(data: "ParticleCountData", surface_area: float) -> "ParticleCountData":
    if data.particles_05um:
        average = calculate_particle_average(data.particles_05um)
    else:
        average = data.particle_05

    return data.model_copy(
        update={
            "average": average,
            "particle_05": average,
            "iso_class": determine_iso_class(average),
            "sampling_points": calculate_sampling_points(surface_area),
        }
    )
