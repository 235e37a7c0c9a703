"""Service pattern checklist structure and keyword helpers"""

import copy
from typing import Any, Optional

# Vocabulary used when comparing record contents with pattern checklists
SERVICE_KEYWORDS = (
    "排泄",
    "食事",
    "入浴",
    "清拭",
    "服薬",
    "移乗",
    "移動",
    "外出",
    "起床",
    "就寝",
    "清掃",
    "洗濯",
    "調理",
    "買い物",
    "見守り",
)

# (content keywords, main service type), checked in order
MAIN_SERVICE_TYPES = (
    (("食事", "食べ"), "食事介助"),
    (("入浴", "お風呂"), "入浴介助"),
    (("トイレ", "排泄"), "排泄介助"),
    (("清拭",), "清拭"),
    (("服薬", "薬"), "服薬介助"),
    (("掃除", "清掃"), "掃除"),
    (("洗濯",), "洗濯"),
    (("調理", "料理"), "調理"),
)
OTHER_SERVICE_TYPE = "その他"

_DEFAULT_DETAILS: dict[str, Any] = {
    "pre_check": {
        "health_check": False,
        "environment_setup": False,
        "consultation_record": False,
    },
    "excretion": {
        "toilet_assistance": False,
        "portable_toilet": False,
        "diaper_change": False,
        "pad_change": False,
        "cleaning": False,
        "bowel_movement_count": 0,
        "urination_count": 0,
    },
    "meal": {
        "full_assistance": False,
        "completion_status": "",
        "water_intake": 0,
    },
    "body_care": {
        "body_wipe": "",
        "full_body_bath": False,
        "partial_bath_hand": False,
        "partial_bath_foot": False,
        "hair_wash": False,
        "face_wash": False,
        "oral_care": False,
    },
    "body_grooming": {
        "nail_care": False,
        "makeup": False,
    },
    "hair_wash": False,
    "assistance": {
        "position_change": False,
        "transfer_assistance": False,
        "movement_assistance": False,
        "outing_assistance": False,
        "dressing_assistance": False,
        "wake_assistance": False,
        "sleep_assistance": False,
        "medication_assistance": False,
    },
    "life_support": {
        "cleaning": {
            "room_cleaning": False,
            "toilet_cleaning": False,
            "table_cleaning": False,
        },
        "laundry": {
            "washing_drying": False,
            "ironing": False,
        },
        "bedding": {
            "sheet_change": False,
            "cover_change": False,
        },
        "clothing": {
            "organization": False,
            "repair": False,
        },
        "cooking": {
            "general_cooking": False,
            "serving": False,
            "cleanup": False,
        },
        "shopping": {
            "daily_items": False,
            "medicine_pickup": False,
        },
    },
    "self_support": {
        "safety_monitoring": False,
        "housework_together": False,
        "motivation_support": False,
    },
    "exit_check": {
        "fire_safety": False,
        "electricity": False,
        "water": False,
        "door_lock": False,
    },
}


def default_pattern_details() -> dict[str, Any]:
    return copy.deepcopy(_DEFAULT_DETAILS)


def merge_pattern_details(partial: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Deep-merge a partial checklist over the all-false defaults"""
    merged = default_pattern_details()

    def _merge(target: dict, source: dict) -> None:
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                _merge(target[key], value)
            else:
                target[key] = value

    if partial:
        _merge(merged, partial)
    return merged


def _flag(details: dict, *path: str) -> Any:
    node: Any = details
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def extract_service_keywords(details: Optional[dict[str, Any]]) -> list[str]:
    """Keywords from SERVICE_KEYWORDS that a checklist covers"""
    if not details:
        return []

    checks = (
        (_flag(details, "excretion", "toilet_assistance") or _flag(details, "excretion", "diaper_change"), "排泄"),
        (_flag(details, "meal", "full_assistance"), "食事"),
        (_flag(details, "body_care", "full_body_bath"), "入浴"),
        (_flag(details, "body_care", "body_wipe"), "清拭"),
        (_flag(details, "assistance", "medication_assistance"), "服薬"),
        (_flag(details, "assistance", "transfer_assistance"), "移乗"),
        (_flag(details, "assistance", "movement_assistance"), "移動"),
        (_flag(details, "assistance", "outing_assistance"), "外出"),
        (_flag(details, "assistance", "wake_assistance"), "起床"),
        (_flag(details, "assistance", "sleep_assistance"), "就寝"),
        (_flag(details, "life_support", "cleaning", "room_cleaning"), "清掃"),
        (_flag(details, "life_support", "laundry", "washing_drying"), "洗濯"),
        (_flag(details, "life_support", "cooking", "general_cooking"), "調理"),
        (_flag(details, "life_support", "shopping", "daily_items"), "買い物"),
        (_flag(details, "self_support", "safety_monitoring"), "見守り"),
    )
    return [keyword for enabled, keyword in checks if enabled]


def extract_content_keywords(content: Optional[str]) -> list[str]:
    if not content:
        return []
    return [keyword for keyword in SERVICE_KEYWORDS if keyword in content]


def extract_main_service_type(content: Optional[str]) -> str:
    if not content:
        return OTHER_SERVICE_TYPE
    for keywords, service_type in MAIN_SERVICE_TYPES:
        if any(keyword in content for keyword in keywords):
            return service_type
    return OTHER_SERVICE_TYPE


def generate_pattern_details_from_content(content: Optional[str]) -> dict[str, Any]:
    """Pre-fill a checklist from free-text service content"""
    details = default_pattern_details()
    if not content:
        return details

    def has(*words: str) -> bool:
        return any(word in content for word in words)

    if has("食事", "食べ"):
        details["meal"]["full_assistance"] = True
        details["meal"]["completion_status"] = "完食"
        details["meal"]["water_intake"] = 200
    if has("入浴", "お風呂"):
        details["body_care"]["full_body_bath"] = True
    if has("トイレ", "排泄"):
        details["excretion"]["toilet_assistance"] = True
    if has("おむつ", "オムツ"):
        details["excretion"]["diaper_change"] = True
    if has("パッド"):
        details["excretion"]["pad_change"] = True
    if has("清拭"):
        details["body_care"]["body_wipe"] = "部分"
    if has("洗髪"):
        details["body_care"]["hair_wash"] = True
    if has("口腔", "歯磨き"):
        details["body_care"]["oral_care"] = True
    if has("服薬", "薬"):
        details["assistance"]["medication_assistance"] = True
    if has("掃除", "清掃"):
        details["life_support"]["cleaning"]["room_cleaning"] = True
    if has("洗濯"):
        details["life_support"]["laundry"]["washing_drying"] = True
    if has("調理", "料理"):
        details["life_support"]["cooking"]["general_cooking"] = True
    if has("買い物"):
        details["life_support"]["shopping"]["daily_items"] = True
    if has("見守り"):
        details["self_support"]["safety_monitoring"] = True

    return details
