LBS_TO_KG = 0.453592
KG_TO_LBS = 2.20462

DISPLAY_UNITS = ("lbs", "kg")


def lbs_to_kg(lbs: float) -> float:
    return lbs * LBS_TO_KG


def kg_to_lbs(kg: float) -> float:
    return kg * KG_TO_LBS


# Entries are stored in lbs; display_unit only affects input and output.
def to_display_unit(weight_lbs: float, display_unit: str) -> float:
    if display_unit == "kg":
        return lbs_to_kg(weight_lbs)
    return weight_lbs


def from_display_unit(weight: float, display_unit: str) -> float:
    if display_unit == "kg":
        return kg_to_lbs(weight)
    return weight


def format_with_unit(weight_lbs: float, display_unit: str) -> str:
    value = to_display_unit(weight_lbs, display_unit)
    return f"{value:.1f} {display_unit}"
