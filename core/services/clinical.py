"""
Clinical metric helpers for posyandu measurements.

The growth indicators below (weight-for-age, height-for-age,
weight-for-height) are simplified approximations of the WHO child growth
standard: the reference median grows linearly with age and the standard
deviation is a fixed share of the median.  They are NOT the WHO z-score
lookup tables and their output must not be read as such.  Keep the
formulas as they are; replacing them with the real tables changes the
classification of every stored measurement.

All functions are pure.  Ages clamp to zero; the other functions accept
any number and return extreme but defined values for nonsense input.
"""
from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from django.utils import timezone

DateLike = Union[date, datetime, str]

MALE = 'L'
FEMALE = 'P'


class Badge(str, enum.Enum):
    GOOD = 'good'
    WARNING = 'warning'
    DANGER = 'danger'
    INFO = 'info'


class WeightForAge(str, enum.Enum):
    SEVERELY_UNDERWEIGHT = 'severely_underweight'
    UNDERWEIGHT = 'underweight'
    NORMAL = 'normal'


class HeightForAge(str, enum.Enum):
    SEVERELY_STUNTED = 'severely_stunted'
    STUNTED = 'stunted'
    NORMAL = 'normal'


class WeightForHeight(str, enum.Enum):
    SEVERELY_WASTED = 'severely_wasted'
    WASTED = 'wasted'
    NORMAL = 'normal'
    OVERWEIGHT = 'overweight'


class BMIStatus(str, enum.Enum):
    UNDERWEIGHT = 'underweight'
    NORMAL = 'normal'
    OVERWEIGHT = 'overweight'
    OBESE = 'obese'


class ArmCircumferenceStatus(str, enum.Enum):
    NORMAL = 'normal'
    CED_RISK = 'ced_risk'  # chronic energy deficiency (KEK)


class BloodPressureStatus(str, enum.Enum):
    NORMAL = 'normal'
    PREHYPERTENSION = 'prehypertension'
    STAGE_1 = 'stage_1'
    STAGE_2 = 'stage_2'


@dataclass(frozen=True)
class Indicator:
    status: str
    label: str
    badge: Badge
    z_score: Optional[float] = None
    value: Optional[float] = None

    def as_dict(self) -> dict:
        data = asdict(self)
        data['status'] = str(getattr(self.status, 'value', self.status))
        data['badge'] = self.badge.value
        return {k: v for k, v in data.items() if v is not None}


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _today(now: Optional[DateLike]) -> date:
    return _as_date(now) if now is not None else timezone.localdate()


# ---------------------------------------------------------------------
# Age
# ---------------------------------------------------------------------
def age_in_months(birth_date: DateLike, now: Optional[DateLike] = None) -> int:
    dob, today = _as_date(birth_date), _today(now)
    months = (today.year - dob.year) * 12 + (today.month - dob.month)
    if today.day < dob.day:
        months -= 1
    return max(0, months)


def age_in_years(birth_date: DateLike, now: Optional[DateLike] = None) -> int:
    dob, today = _as_date(birth_date), _today(now)
    years = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        years -= 1
    return max(0, years)


def format_age(birth_date: DateLike, now: Optional[DateLike] = None) -> str:
    """Indonesian age text, e.g. ``'8 bulan'`` or ``'2 tahun 3 bulan'``."""
    months = age_in_months(birth_date, now)
    if months < 12:
        return f'{months} bulan'
    years, rest = divmod(months, 12)
    if rest == 0:
        return f'{years} tahun'
    return f'{years} tahun {rest} bulan'


# ---------------------------------------------------------------------
# Child growth (simplified, see module docstring)
# ---------------------------------------------------------------------
def _weight_reference(age_months: float, gender: str) -> tuple[float, float]:
    base = 3.3 if gender == MALE else 3.2
    if age_months <= 3:
        monthly_gain = 0.9
    elif age_months <= 6:
        monthly_gain = 0.6
    elif age_months <= 12:
        monthly_gain = 0.4
    else:
        monthly_gain = 0.2
    median = base + age_months * monthly_gain
    return median, median * 0.12


def _height_reference(age_months: float, gender: str) -> tuple[float, float]:
    base = 49.9 if gender == MALE else 49.1
    monthly_gain = 2.5 if age_months <= 12 else 1.0
    median = base + age_months * monthly_gain
    return median, median * 0.04


def weight_for_age(weight: float, age_months: float, gender: str) -> Indicator:
    """BB/U."""
    median, sd = _weight_reference(age_months, gender)
    z = (weight - median) / sd
    if z < -3:
        return Indicator(WeightForAge.SEVERELY_UNDERWEIGHT, 'Gizi Buruk', Badge.DANGER, z_score=z)
    if z < -2:
        return Indicator(WeightForAge.UNDERWEIGHT, 'Gizi Kurang', Badge.WARNING, z_score=z)
    return Indicator(WeightForAge.NORMAL, 'Gizi Baik', Badge.GOOD, z_score=z)


def height_for_age(height: float, age_months: float, gender: str) -> Indicator:
    """TB/U (PB/U below two years)."""
    median, sd = _height_reference(age_months, gender)
    z = (height - median) / sd
    if z < -3:
        return Indicator(HeightForAge.SEVERELY_STUNTED, 'Stunting Berat', Badge.DANGER, z_score=z)
    if z < -2:
        return Indicator(HeightForAge.STUNTED, 'Stunting', Badge.WARNING, z_score=z)
    return Indicator(HeightForAge.NORMAL, 'Normal', Badge.GOOD, z_score=z)


def weight_for_height(weight: float, height: float, gender: str) -> Indicator:
    """BB/TB, using a weight per height ratio against a fixed expectation."""
    ratio = weight / (height / 100)
    expected = 0.15 if gender == MALE else 0.14
    sd = expected * 0.15
    z = (ratio - expected) / sd
    if z < -3:
        return Indicator(WeightForHeight.SEVERELY_WASTED, 'Wasting Berat', Badge.DANGER, z_score=z)
    if z < -2:
        return Indicator(WeightForHeight.WASTED, 'Wasting', Badge.WARNING, z_score=z)
    if z <= 2:
        return Indicator(WeightForHeight.NORMAL, 'Normal', Badge.GOOD, z_score=z)
    return Indicator(WeightForHeight.OVERWEIGHT, 'Gizi Lebih', Badge.WARNING, z_score=z)


# ---------------------------------------------------------------------
# Adults & pregnancy
# ---------------------------------------------------------------------
def body_mass_index(weight: float, height_cm: float) -> float:
    height_m = height_cm / 100
    return weight / (height_m * height_m)


def bmi_status(bmi: float) -> Indicator:
    """IMT category for adults."""
    if bmi < 18.5:
        return Indicator(BMIStatus.UNDERWEIGHT, 'Berat Badan Kurang', Badge.INFO, value=bmi)
    if bmi < 25:
        return Indicator(BMIStatus.NORMAL, 'Normal', Badge.GOOD, value=bmi)
    if bmi < 30:
        return Indicator(BMIStatus.OVERWEIGHT, 'Berat Badan Lebih', Badge.WARNING, value=bmi)
    return Indicator(BMIStatus.OBESE, 'Obesitas', Badge.DANGER, value=bmi)


def arm_circumference_status(circumference_cm: float, gender: Optional[str] = None) -> Indicator:
    """LILA; the 23.5 cm cut-off applies to both genders."""
    if circumference_cm >= 23.5:
        return Indicator(ArmCircumferenceStatus.NORMAL, 'Normal', Badge.GOOD, value=circumference_cm)
    return Indicator(ArmCircumferenceStatus.CED_RISK, 'Risiko KEK', Badge.WARNING, value=circumference_cm)


def blood_pressure_status(systolic: float, diastolic: float) -> Indicator:
    if systolic >= 160 or diastolic >= 100:
        return Indicator(BloodPressureStatus.STAGE_2, 'Hipertensi Stadium 2', Badge.DANGER)
    if systolic >= 140 or diastolic >= 90:
        return Indicator(BloodPressureStatus.STAGE_1, 'Hipertensi Stadium 1', Badge.WARNING)
    if systolic >= 120 or diastolic >= 80:
        return Indicator(BloodPressureStatus.PREHYPERTENSION, 'Prehipertensi', Badge.WARNING)
    return Indicator(BloodPressureStatus.NORMAL, 'Normal', Badge.GOOD)


def parse_blood_pressure(text: str) -> Optional[tuple[int, int]]:
    """``'120/80'`` -> ``(120, 80)``; anything else -> None."""
    parts = (text or '').strip().split('/')
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def waist_circumference_risk(circumference_cm: float, gender: str) -> bool:
    threshold = 90 if gender == MALE else 80
    return circumference_cm >= threshold


def pregnancy_trimester(weeks: int) -> int:
    if weeks <= 12:
        return 1
    if weeks <= 27:
        return 2
    return 3


def _roll(year: int, month: int, day: int) -> date:
    # Normalise month first, then let surplus days spill into the next month
    # (31 Feb -> 2/3 Mar), the way calendar setters on mutable dates behave.
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return date(year, month, 1) + timedelta(days=day - 1)


def estimated_delivery_date(last_menstrual_period: DateLike) -> date:
    """HPL by Naegele's rule: +7 days, -3 months, +1 year, in that order."""
    d = _as_date(last_menstrual_period) + timedelta(days=7)
    d = _roll(d.year, d.month - 3, d.day)
    return _roll(d.year + 1, d.month, d.day)


def gestational_age_weeks(last_menstrual_period: DateLike, now: Optional[DateLike] = None) -> int:
    days = (_today(now) - _as_date(last_menstrual_period)).days
    return max(0, days // 7)


# ---------------------------------------------------------------------
# Combined assessment of one measurement record
# ---------------------------------------------------------------------
def assess(*, gender: str, age_months: Optional[int] = None, weight: Optional[float] = None,
           height: Optional[float] = None, arm_circumference: Optional[float] = None,
           waist_circumference: Optional[float] = None, blood_pressure: Optional[str] = None,
           last_menstrual_period: Optional[DateLike] = None, now: Optional[DateLike] = None) -> dict:
    """Run every indicator the given measurements allow.

    Growth indicators are only computed for children under five
    (``age_months`` < 60); BMI only from five years on.
    """
    result: dict = {}
    is_child = age_months is not None and age_months < 60
    if is_child and weight:
        result['weightForAge'] = weight_for_age(weight, age_months, gender).as_dict()
    if is_child and height:
        result['heightForAge'] = height_for_age(height, age_months, gender).as_dict()
    if is_child and weight and height:
        result['weightForHeight'] = weight_for_height(weight, height, gender).as_dict()
    if not is_child and weight and height:
        bmi = body_mass_index(weight, height)
        result['bmi'] = bmi_status(round(bmi, 2)).as_dict()
    if arm_circumference:
        result['armCircumference'] = arm_circumference_status(arm_circumference, gender).as_dict()
    if waist_circumference:
        risk = waist_circumference_risk(waist_circumference, gender)
        result['waistCircumference'] = {
            'isRisk': risk,
            'label': 'Risiko Metabolik' if risk else 'Normal',
            'badge': (Badge.WARNING if risk else Badge.GOOD).value,
        }
    bp = parse_blood_pressure(blood_pressure) if blood_pressure else None
    if bp:
        result['bloodPressure'] = blood_pressure_status(*bp).as_dict()
    if last_menstrual_period:
        weeks = gestational_age_weeks(last_menstrual_period, now)
        result['pregnancy'] = {
            'gestationalWeeks': weeks,
            'trimester': pregnancy_trimester(weeks),
            'estimatedDeliveryDate': estimated_delivery_date(last_menstrual_period).isoformat(),
        }
    return result
