from typing import Optional

# Average asking-derived price per m² living area by federal state (2024/2025).
REGIONAL_AVERAGES = {
    "Baden-Württemberg": {"house": 3200, "apartment": 3800},
    "Bayern": {"house": 3400, "apartment": 4200},
    "Berlin": {"house": 3800, "apartment": 4500},
    "Brandenburg": {"house": 2000, "apartment": 2400},
    "Bremen": {"house": 2200, "apartment": 2600},
    "Hamburg": {"house": 4200, "apartment": 5000},
    "Hessen": {"house": 2800, "apartment": 3200},
    "Mecklenburg-Vorpommern": {"house": 1800, "apartment": 2200},
    "Niedersachsen": {"house": 2000, "apartment": 2400},
    "Nordrhein-Westfalen": {"house": 2200, "apartment": 2600},
    "Rheinland-Pfalz": {"house": 2000, "apartment": 2400},
    "Saarland": {"house": 1600, "apartment": 2000},
    "Sachsen": {"house": 2000, "apartment": 2200},
    "Sachsen-Anhalt": {"house": 1400, "apartment": 1800},
    "Schleswig-Holstein": {"house": 2400, "apartment": 2800},
    "Thüringen": {"house": 1600, "apartment": 2000},
}

NATIONAL_AVERAGE = {"house": 2200, "apartment": 2800}

def regional_average(region: Optional[str], is_house: bool) -> Optional[float]:
    row = REGIONAL_AVERAGES.get(region or "")
    if row is None:
        return None
    return float(row["house" if is_house else "apartment"])

def national_average(is_house: bool) -> float:
    return float(NATIONAL_AVERAGE["house" if is_house else "apartment"])

def reference_average(region: Optional[str], is_house: bool) -> float:
    """Regional average where the region is known, national average otherwise."""
    avg = regional_average(region, is_house)
    return avg if avg is not None else national_average(is_house)
