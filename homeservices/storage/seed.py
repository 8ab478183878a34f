"""Default catalog rows written into an empty store."""

from __future__ import annotations

DEFAULT_CATEGORIES: list[dict[str, object]] = [
    {
        "name_ar": "السباكة",
        "name_en": "Plumbing",
        "description_ar": "إصلاح وتركيب الأنابيب والمغاسل وسخانات المياه",
        "description_en": "Pipe, sink and water heater repair and installation",
        "icon": "fas fa-wrench",
        "sort_order": 1,
        "active": True,
    },
    {
        "name_ar": "الكهرباء",
        "name_en": "Electrical",
        "description_ar": "تمديدات كهربائية وإصلاح الأعطال والإنارة",
        "description_en": "Wiring, fault repair and lighting",
        "icon": "fas fa-bolt",
        "sort_order": 2,
        "active": True,
    },
    {
        "name_ar": "التنظيف",
        "name_en": "Cleaning",
        "description_ar": "تنظيف المنازل والمكاتب والسجاد",
        "description_en": "Home, office and carpet cleaning",
        "icon": "fas fa-broom",
        "sort_order": 3,
        "active": True,
    },
    {
        "name_ar": "التكييف والتبريد",
        "name_en": "Air Conditioning",
        "description_ar": "صيانة وتركيب المكيفات والثلاجات",
        "description_en": "AC and refrigerator maintenance and installation",
        "icon": "fas fa-snowflake",
        "sort_order": 4,
        "active": True,
    },
    {
        "name_ar": "الدهان",
        "name_en": "Painting",
        "description_ar": "دهان داخلي وخارجي وديكورات",
        "description_en": "Interior and exterior painting",
        "icon": "fas fa-paint-roller",
        "sort_order": 5,
        "active": True,
    },
    {
        "name_ar": "النجارة",
        "name_en": "Carpentry",
        "description_ar": "تصليح وتركيب الأبواب والخزائن والأثاث",
        "description_en": "Doors, cabinets and furniture repair",
        "icon": "fas fa-hammer",
        "sort_order": 6,
        "active": True,
    },
]
