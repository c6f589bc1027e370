from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Tuple

from emigration.errors import UnknownDatasetError

ChartKind = Literal["bar", "barh", "line", "area", "share", "choropleth"]


@dataclass(frozen=True)
class Category:
    field: str
    label: str
    aliases: Tuple[str, ...] = ()
    iso3: Optional[str] = None
    iso_numeric: Optional[int] = None


@dataclass(frozen=True)
class DatasetDescriptor:
    key: str
    collection: str
    title: str
    chart: ChartKind
    categories: Tuple[Category, ...]
    description: str = ""

    @property
    def fields(self) -> List[str]:
        return [c.field for c in self.categories]

    def label_for(self, field_name: str) -> str:
        for c in self.categories:
            if c.field == field_name:
                return c.label
        return field_name

    def to_dict(self) -> Dict[str, object]:
        return {
            "key": self.key,
            "collection": self.collection,
            "title": self.title,
            "chart": self.chart,
            "description": self.description,
            "categories": [{"field": c.field, "label": c.label} for c in self.categories],
        }


def _simple(*fields: str) -> Tuple[Category, ...]:
    return tuple(Category(field=f, label=f) for f in fields)


CIVIL_STATUS = DatasetDescriptor(
    key="civil_status",
    collection="emigrants",
    title="Emigrants by Civil Status",
    chart="bar",
    description="Registered Filipino emigrants per year by civil status.",
    categories=(
        Category("single", "Single"),
        Category("married", "Married"),
        Category("widower", "Widower"),
        Category("separated", "Separated"),
        Category("divorced", "Divorced"),
        Category("notReported", "Not Reported"),
    ),
)

SEX = DatasetDescriptor(
    key="sex",
    collection="emigrantsBySex",
    title="Emigrants by Sex",
    chart="line",
    description="Male and female emigrants over time.",
    categories=(Category("male", "Male"), Category("female", "Female")),
)

AGE_BANDS = (
    "14-Below", "15-19", "20-24", "25-29", "30-34", "35-39",
    "40-44", "45-49", "50-54", "55-59", "60-64", "65-69", "70-above",
)

AGE = DatasetDescriptor(
    key="age",
    collection="emigrantsByAge",
    title="Emigrants by Age Group",
    chart="area",
    description="Age distribution of emigrants.",
    categories=tuple(Category(band, band, aliases=(band.replace("-", " ", 1),)) for band in AGE_BANDS),
)

OCCUPATION = DatasetDescriptor(
    key="occupation",
    collection="emigrantsByOccu",
    title="Emigrants by Major Occupation",
    chart="share",
    description="Share of emigrants by major occupation group.",
    categories=_simple(
        "Professional",
        "Managerial",
        "Clerical",
        "Sales",
        "Service",
        "Agriculture",
        "Production",
        "Armed Forces",
        "Housewives",
        "Retirees",
        "Students",
        "Minors",
        "Out of School Youth",
        "No Occupation Reported",
    ),
)

# Stored under camelCase keys; the display label is what people put in CSV headers.
EDUCATION = DatasetDescriptor(
    key="education",
    collection="emigrantsByEdu",
    title="Emigrants by Educational Attainment",
    chart="barh",
    description="Highest educational attainment of emigrants.",
    categories=(
        Category("notOfSchoolingAge", "Not of Schooling Age"),
        Category("noFormalEducation", "No Formal Education"),
        Category("elementaryLevel", "Elementary Level"),
        Category("elementaryGraduate", "Elementary Graduate"),
        Category("highSchoolLevel", "High School Level"),
        Category("highSchoolGraduate", "High School Graduate"),
        Category("vocationalLevel", "Vocational Level"),
        Category("vocationalGraduate", "Vocational Graduate"),
        Category("collegeLevel", "College Level"),
        Category("collegeGraduate", "College Graduate"),
        Category("postGraduateLevel", "Post Graduate Level"),
        Category("postGraduate", "Post Graduate"),
        Category("nonFormalEducation", "Non-Formal Education"),
        Category("notReportedNoResponse", "Not Reported / No Response"),
    ),
)

COUNTRY = DatasetDescriptor(
    key="country",
    collection="emigrantsByCountry",
    title="Emigrants by Major Destination Country",
    chart="choropleth",
    description="Top destination countries of emigrants.",
    categories=(
        Category("USA", "USA", aliases=("United States",), iso3="USA", iso_numeric=840),
        Category("CANADA", "CANADA", iso3="CAN", iso_numeric=124),
        Category("JAPAN", "JAPAN", iso3="JPN", iso_numeric=392),
        Category("AUSTRALIA", "AUSTRALIA", iso3="AUS", iso_numeric=36),
        Category("ITALY", "ITALY", iso3="ITA", iso_numeric=380),
        Category("NEW ZEALAND", "NEW ZEALAND", iso3="NZL", iso_numeric=554),
        Category("UNITED KINGDOM", "UNITED KINGDOM", aliases=("UK",), iso3="GBR", iso_numeric=826),
        Category("GERMANY", "GERMANY", iso3="DEU", iso_numeric=276),
        Category("SOUTH KOREA", "SOUTH KOREA", aliases=("KOREA",), iso3="KOR", iso_numeric=410),
        Category("SPAIN", "SPAIN", iso3="ESP", iso_numeric=724),
        Category("OTHERS", "OTHERS"),
    ),
)

DATASETS: Tuple[DatasetDescriptor, ...] = (CIVIL_STATUS, SEX, AGE, OCCUPATION, EDUCATION, COUNTRY)
_BY_KEY: Dict[str, DatasetDescriptor] = {d.key: d for d in DATASETS}


def list_datasets() -> List[DatasetDescriptor]:
    return list(DATASETS)


def get_dataset(key: str) -> DatasetDescriptor:
    try:
        return _BY_KEY[key]
    except KeyError:
        raise UnknownDatasetError(f"Unknown dataset: {key!r}") from None
