"""
Method selection and value assembly.

    apartment + market price              -> comparison
    house + land value (+ plot, estimated) -> cost-lite
    anything else                         -> market-indication

Every path yields a total, a per-m² price and a range. Missing sources lower
the confidence and widen the range; nothing here raises for missing data.
"""
from typing import List, Optional, Tuple

from ..core.utils import round_money
from .cost_model import building_value
from .date_correction import valuation_date_correction
from .factors import compute_factors, location_tier
from .income import IncomeResult, income_value
from .inputs import PropertyInput, SourceData, estimate_living_area, estimate_plot_area
from .market_price import adjusted_price_per_m2, listing_discount
from .plausibility import correct
from .result import (
    SRC_COMPARISON,
    SRC_COST,
    SRC_INCOME,
    SRC_NATIONAL_AVERAGE,
    SRC_PRICE_INDEX,
    Confidence,
    Method,
    ValuationResult,
    value_range,
)
from .tables import regional_average, national_average

# Land share assumed for an apartment's co-ownership portion: living area x 0.3.
APARTMENT_LAND_SHARE = 0.3
# Without any land value, the land proxy of an apartment is 25% of its comparison value.
APARTMENT_LAND_PROXY = 0.25
COMPARISON_WEIGHT = 0.8
CROSS_CHECK_TOLERANCE = 0.25

def _eur(value: float) -> str:
    return f"{round_money(value):,} €"

def select_method(is_apartment: bool, has_market_price: bool, has_land_value: bool, plot_area: float) -> Method:
    if is_apartment and has_market_price:
        return Method.COMPARISON
    if not is_apartment and has_land_value and plot_area > 0:
        return Method.COST_LITE
    return Method.MARKET_INDICATION

def confidence_and_spread(
    method: Method,
    has_market_price: bool,
    land_official: Optional[bool],
    has_income: bool,
    living_estimated: bool,
    plot_estimated: bool,
) -> Tuple[Confidence, float]:
    """`land_official` is None when no land value is available."""
    if living_estimated or (not has_market_price and land_official is None) or (
        method == Method.MARKET_INDICATION and not has_market_price
    ):
        return Confidence.LOW, 0.25
    if plot_estimated:
        return Confidence.LOW, 0.20
    if method == Method.COMPARISON:
        if land_official:
            return Confidence.HIGH, (0.06 if has_income else 0.10)
        return Confidence.MEDIUM, 0.15
    if method == Method.COST_LITE:
        if land_official:
            return Confidence.HIGH, 0.08
        return Confidence.MEDIUM, 0.15
    return Confidence.MEDIUM, 0.15

def assemble(prop: PropertyInput, data: SourceData) -> ValuationResult:
    """Raw estimate before the plausibility corrector."""
    notes: List[str] = list(data.notes)
    sources: List[str] = []
    valuation_year = data.valuation_date.year

    # ---- inputs ----
    living = prop.living_area or 0.0
    living_estimated = False
    if living <= 0:
        living, note = estimate_living_area(prop)
        living_estimated = True
        notes.append(note)

    year = prop.construction_year
    if year is not None and (year < 1800 or year > valuation_year + 5):
        notes.append(f"Construction year {year} is outside the plausible range (1800-{valuation_year + 5}); the result may be unreliable.")
    if living < 15 and not living_estimated:
        notes.append(f"Living area of {living:g} m² is unusually small; the result may be unreliable.")
    if living > 2000:
        notes.append(f"Living area of {living:g} m² is unusually large; the result may be unreliable.")
    if prop.plot_area is not None and prop.plot_area > 50_000:
        notes.append(f"Plot area of {prop.plot_area:g} m² is unusually large; the result may be unreliable.")

    is_house = prop.is_house
    band = data.market.buy_band(is_house) if data.market else None
    if band is not None and band.median <= 0:
        band = None
    rent = data.market.rent(is_house) if data.market else None
    land = data.land_value if data.land_value and data.land_value.value_per_m2 > 0 else None
    land_per_m2 = land.value_per_m2 if land else 0.0

    series = tuple(sorted(data.price_index, key=lambda p: p.quarter))
    tier = location_tier(land_per_m2, band.median if band else 0.0)
    discount = listing_discount(tier, series)
    date_corr, date_basis = valuation_date_correction(land, series, data.valuation_date)
    factors, factor_notes = compute_factors(prop, tier, date_corr)

    if tier != "B":
        label = "A (premium)" if tier == "A" else "C (rural / structurally weak)"
        notes.append(f"Location tier {label}: correction factors and listing discount ({discount:.0%}) adjusted.")
    notes.extend(factor_notes)

    plot = prop.plot_area or 0.0
    plot_estimated = False
    if is_house and land is not None and plot <= 0:
        plot, note = estimate_plot_area(living)
        plot_estimated = True
        notes.append(note)

    method = select_method(prop.is_apartment, band is not None, land is not None, plot)
    income: Optional[IncomeResult] = None

    if method == Method.COMPARISON:
        price = adjusted_price_per_m2(band, factors.total, discount)
        comparison = price * living
        sources += [SRC_COMPARISON, data.market.source]
        land_share = land_per_m2 * (plot or living * APARTMENT_LAND_SHARE)
        if rent:
            proxy = land_share if land else comparison * APARTMENT_LAND_PROXY
            income = income_value(living, rent, proxy, land_per_m2, year, prop.income_type, valuation_year)
        if income is not None and income.value > 0:
            total_f = comparison * COMPARISON_WEIGHT + income.value * (1 - COMPARISON_WEIGHT)
            sources.append(SRC_INCOME)
            notes.append(
                f"Comparison value ({_eur(comparison)}) weighted 80/20 with income value "
                f"{_eur(income.value)} (land interest rate {income.land_interest_rate:.1%})."
            )
        else:
            income = None
            total_f = comparison
        notes.append("Apartment: the land share is contained in the comparison value.")
        land_total = round_money(land_share) if land else 0
        total = round_money(total_f)
        building_total = max(0, total - land_total)
        if land:
            sources.append(land.source)
            if date_corr != 0:
                notes.append(f"Land value reference date {land.reference_date} (informational, not applied to the comparison value).")

    elif method == Method.COST_LITE:
        land_component = land_per_m2 * (1 + date_corr) * plot
        land_total = round_money(land_component)
        sources += [SRC_COST, land.source]
        if band is not None:
            market_total = adjusted_price_per_m2(band, factors.total, discount) * living
            building_f = max(0.0, market_total - land_component)
            sources.append(data.market.source)
            notes.append(
                f"Building value calibrated to the market: {_eur(market_total)} market value "
                f"- {_eur(land_component)} land value."
            )
            if market_total < land_component:
                notes.append("Land value exceeds the market indication; the plot dominates the total value.")
        else:
            cost = building_value(
                living, year, prop.building_type, prop.fitout, prop.modernization,
                land_per_m2, data.cost_index, valuation_year,
            )
            building_f = cost.building_value
            notes.extend(cost.notes)
            if data.cost_index is not None:
                sources.append(data.cost_index.source)
        total = round_money(land_component + building_f)
        building_total = total - land_total

        if date_corr != 0:
            basis = "price index" if date_basis == "index" else "flat estimate of 2.5% per year"
            notes.append(f"Land value reference date {land.reference_date}: market adjustment {date_corr:+.1%} ({basis}).")
            if date_basis == "index":
                sources.append(SRC_PRICE_INDEX)

        if rent:
            income = income_value(living, rent, land_component, land_per_m2, year, prop.income_type, valuation_year)
            if income is not None and income.value > 0:
                sources.append(SRC_INCOME)
                deviation = abs(total - income.value) / income.value
                if deviation > 0.30:
                    notes.append(
                        f"Income value ({_eur(income.value)}) deviates {deviation:.0%} from the cost value; "
                        f"gross rent {_eur(income.gross_income)} per year, land interest rate {income.land_interest_rate:.1%}."
                    )
                else:
                    notes.append(
                        f"Income value confirms the valuation: {_eur(income.value)} "
                        f"(deviation {deviation:.0%}, land interest rate {income.land_interest_rate:.1%})."
                    )
            else:
                income = None

    else:
        if band is not None:
            price = adjusted_price_per_m2(band, factors.total, discount)
            sources.append(data.market.source)
            if land is None:
                notes.append("No land value available; the valuation rests on market listings only.")
        else:
            avg = regional_average(data.region, is_house)
            if avg is not None:
                sources.append(f"Regional average {data.region}")
                notes.append(f"No local market data available; based on the regional average for {data.region}.")
            else:
                avg = national_average(is_house)
                sources.append(SRC_NATIONAL_AVERAGE)
                notes.append("No local market data available; based on the national average.")
            price = avg * (1 + factors.total)
        total = round_money(price * living)
        land_total = round_money(land_per_m2 * plot) if land is not None and plot > 0 else 0
        building_total = max(0, total - land_total)
        if land is not None:
            sources.append(land.source)
        if is_house and not prop.plot_area:
            notes.append("Plot area missing; land and building value cannot be separated.")

    confidence, spread = confidence_and_spread(
        method,
        band is not None,
        None if land is None else not land.estimated,
        income is not None,
        living_estimated,
        plot_estimated,
    )

    # ---- cross-checks ----
    if band is not None and land is not None:
        pure_market = band.median * (1 - discount) * living
        deviation = abs(total - pure_market) / pure_market
        if deviation > CROSS_CHECK_TOLERANCE:
            notes.append(f"Result deviates {deviation:.0%} from the pure market price; manual review recommended.")

    ref = data.reference_value
    if ref is not None and ref.value_per_m2 > 0:
        ref_total = ref.value_per_m2 * living
        deviation = abs(total - ref_total) / ref_total
        sources.append(ref.source)
        if deviation > CROSS_CHECK_TOLERANCE:
            notes.append(
                f"Deviation from the regional reference value: {deviation:.0%} "
                f"({ref.value_per_m2:,.0f} €/m², segment {ref.segment}); manual review recommended."
            )
        else:
            notes.append(
                f"Regional reference value confirms the valuation ({ref.value_per_m2:,.0f} €/m², "
                f"deviation {deviation:.0%}, segment {ref.segment})."
            )

    if land is not None and land.estimated:
        notes.append("The land value is an estimate, not an official reference value; accuracy is limited.")

    if data.market is not None:
        if data.market.district:
            notes.append(
                f"Market prices refer to the district {data.market.district} "
                f"(listing discount {discount:.0%})."
            )
        else:
            notes.append(
                f"Market prices refer to the city average (listing discount {discount:.0%}); "
                "location-specific deviations are possible."
            )

    per_m2 = round_money(total / living)
    return ValuationResult(
        method=method,
        land_value=land_total,
        building_value=building_total,
        total_value=total,
        price_per_m2=per_m2,
        value_range=value_range(total, spread),
        price_per_m2_range=value_range(per_m2, spread),
        income_value=round_money(income.value) if income is not None else None,
        confidence=confidence,
        spread=spread,
        factors=factors,
        notes=tuple(notes),
        sources=tuple(dict.fromkeys(sources)),
        living_area=living,
        is_house=is_house,
        region=data.region,
        location_tier=tier,
    )

def evaluate(prop: PropertyInput, data: SourceData) -> ValuationResult:
    """Assemble the estimate and run the plausibility corrector over it."""
    return correct(assemble(prop, data))
