"""
Static template catalog and the demo seed document.

Each entry's ``data`` is a complete Document usable as the starting point of
an editing session.
"""
from __future__ import annotations

import dataclasses
from typing import Dict, List, Optional

from app.models.schemas import ChartType, DataPoint, Document, Section


@dataclasses.dataclass(frozen=True)
class TemplateDefinition:
    id: str
    name: str
    description: str
    theme_class: str
    data: Document


DEMO_DOCUMENT = Document(
    title="Coffee vs Tea: Drinking Habits",
    subtitle="Comparing consumption behaviour around the world",
    theme_color="#8b5cf6",
    background_color="#f8fafc",
    footer="Source: Global Beverage Index 2024",
    sections=[
        Section(
            id="s1",
            type=ChartType.STAT,
            title="Cups consumed per day (billions)",
            data=[
                DataPoint(name="Coffee", value=2.25),
                DataPoint(name="Tea", value=3.0),
            ],
        ),
        Section(
            id="s2",
            type=ChartType.PIE,
            title="Market share by region",
            description="Main preference on each continent",
            data=[
                DataPoint(name="Europe (coffee)", value=65),
                DataPoint(name="Asia (tea)", value=80),
                DataPoint(name="Americas (coffee)", value=70),
                DataPoint(name="Africa (mixed)", value=50),
            ],
        ),
        Section(
            id="s3",
            type=ChartType.BAR,
            title="Caffeine content (mg)",
            data=[
                DataPoint(name="Espresso", value=63),
                DataPoint(name="Drip coffee", value=95),
                DataPoint(name="Black tea", value=47),
                DataPoint(name="Green tea", value=28),
            ],
        ),
    ],
)


TEMPLATES: List[TemplateDefinition] = [
    TemplateDefinition(
        id="t1",
        name="Quarterly results",
        description="Financial overview with bar charts and key figures",
        theme_class="bg-blue-500",
        data=Document(
            title="Q3 2024 Results",
            subtitle="Financial overview and key indicators",
            theme_color="#3b82f6",
            background_color="#ffffff",
            footer="Internal document - do not distribute",
            sections=[
                Section(
                    id="s1",
                    type=ChartType.STAT,
                    title="Headline revenue metrics",
                    data=[
                        DataPoint(name="Total revenue", value=1250000, label="+12% YoY"),
                        DataPoint(name="Net profit", value=340000, label="27% margin"),
                        DataPoint(name="New customers", value=1450),
                    ],
                ),
                Section(
                    id="s2",
                    type=ChartType.BAR,
                    title="Revenue by department",
                    data=[
                        DataPoint(name="Sales", value=500000),
                        DataPoint(name="Marketing", value=300000),
                        DataPoint(name="Services", value=450000),
                    ],
                ),
                Section(
                    id="s3",
                    type=ChartType.PIE,
                    title="Expense breakdown",
                    data=[
                        DataPoint(name="Salaries", value=60),
                        DataPoint(name="R&D", value=25),
                        DataPoint(name="Marketing", value=15),
                    ],
                ),
            ],
        ),
    ),
    TemplateDefinition(
        id="t2",
        name="Sustainability",
        description="Green template for environmental statistics",
        theme_class="bg-emerald-500",
        data=Document(
            title="Sustainability Goals 2030",
            subtitle="Our path to net-zero carbon emissions",
            theme_color="#10b981",
            background_color="#ecfdf5",
            footer="Source: Annual Sustainability Report 2024",
            sections=[
                Section(
                    id="s1",
                    type=ChartType.PIE,
                    title="Carbon footprint sources",
                    data=[
                        DataPoint(name="Manufacturing", value=45),
                        DataPoint(name="Logistics", value=30),
                        DataPoint(name="Offices", value=10),
                        DataPoint(name="Other", value=15),
                    ],
                ),
                Section(
                    id="s2",
                    type=ChartType.LIST,
                    title="Key initiatives",
                    data=[
                        DataPoint(name="Solar installation", value=0, label="Covers 80% of warehouse roofs"),
                        DataPoint(name="EV delivery fleet", value=0, label="Replaces 50 diesel trucks"),
                        DataPoint(name="Zero-waste policy", value=0, label="95% of production waste recycled"),
                    ],
                ),
            ],
        ),
    ),
    TemplateDefinition(
        id="t3",
        name="Social media analytics",
        description="Vibrant template for engagement and growth",
        theme_class="bg-pink-500",
        data=Document(
            title="Social Media Engagement",
            subtitle="Campaign results: summer welcome promotion",
            theme_color="#ec4899",
            background_color="#fff1f2",
            sections=[
                Section(
                    id="s1",
                    type=ChartType.LINE,
                    title="Follower growth (last 7 days)",
                    data=[
                        DataPoint(name="Mon", value=10200),
                        DataPoint(name="Tue", value=10350),
                        DataPoint(name="Wed", value=10600),
                        DataPoint(name="Thu", value=10800),
                        DataPoint(name="Fri", value=11200),
                        DataPoint(name="Sat", value=11500),
                        DataPoint(name="Sun", value=11900),
                    ],
                ),
                Section(
                    id="s2",
                    type=ChartType.STAT,
                    title="Engagement",
                    data=[
                        DataPoint(name="Likes", value=45200),
                        DataPoint(name="Shares", value=8900),
                        DataPoint(name="Comments", value=3400),
                    ],
                ),
            ],
        ),
    ),
    TemplateDefinition(
        id="t4",
        name="Tech product launch",
        description="Dark, modern template for product specs",
        theme_class="bg-slate-800",
        data=Document(
            title="Introducing Nexus X1",
            subtitle="Performance from the future",
            theme_color="#6366f1",
            background_color="#0f172a",
            footer="Confidential - Nexus Corp",
            sections=[
                Section(
                    id="s1",
                    type=ChartType.STAT,
                    title="Core specs",
                    data=[
                        DataPoint(name="Compute", value=120, label="TFLOPS"),
                        DataPoint(name="Battery", value=24, label="hours"),
                        DataPoint(name="Weight", value=180, label="grams"),
                    ],
                ),
                Section(
                    id="s2",
                    type=ChartType.BAR,
                    title="Performance comparison",
                    data=[
                        DataPoint(name="Nexus X1", value=9500),
                        DataPoint(name="Competitor A", value=7200),
                        DataPoint(name="Competitor B", value=6800),
                    ],
                ),
            ],
        ),
    ),
]

_TEMPLATES_BY_ID: Dict[str, TemplateDefinition] = {t.id: t for t in TEMPLATES}


def get_template(template_id: str) -> Optional[TemplateDefinition]:
    """Return the catalog entry with *template_id*, or None."""
    return _TEMPLATES_BY_ID.get(template_id)


def seed_document(template_id: Optional[str] = None) -> Document:
    """Document an editing session starts from: a template's data or the demo."""
    if template_id:
        template = get_template(template_id)
        if template is not None:
            return template.data
    return DEMO_DOCUMENT
