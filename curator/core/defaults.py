"""
Default taxonomy variables, used to seed a new store and to reset a category.
"""

from typing import List

from .schema import CATEGORIES, CategorySet, Option, require_category

DEFAULT_SUBGENRES = [
    ("pop_rock", "Pop Rock", "pop"),
    ("dance_pop", "Dance Pop", "pop"),
    ("indie_pop", "Indie Pop", "pop"),
    ("synth_pop", "Synth Pop", "pop"),
    ("alt_hip_hop", "Alternative Hip-Hop", "hip_hop"),
    ("trap", "Trap", "hip_hop"),
    ("boom_bap", "Boom Bap", "hip_hop"),
    ("neo_soul", "Neo-Soul", "r_b"),
    ("contemporary_rb", "Contemporary R&B", "r_b"),
    ("alt_rock", "Alternative Rock", "rock"),
    ("indie_rock", "Indie Rock", "rock"),
    ("hard_rock", "Hard Rock", "rock"),
    ("house", "House", "electronic"),
    ("techno", "Techno", "electronic"),
    ("dubstep", "Dubstep", "electronic"),
]

DEFAULT_GENRES = [
    ("pop", "Pop"),
    ("hip_hop", "Hip-Hop"),
    ("r_b", "R&B"),
    ("rock", "Rock"),
    ("electronic", "Electronic"),
]

DEFAULT_TEMPOS = [
    ("very_slow", "Very Slow", "< 60 BPM"),
    ("slow", "Slow", "60-80 BPM"),
    ("medium_slow", "Medium Slow", "80-100 BPM"),
    ("medium", "Medium", "100-120 BPM"),
    ("medium_fast", "Medium Fast", "120-140 BPM"),
    ("fast", "Fast", "140-160 BPM"),
    ("very_fast", "Very Fast", "> 160 BPM"),
]

DEFAULT_VOCALS = [
    ("male_vocals", "Male Vocals"),
    ("female_vocals", "Female Vocals"),
    ("mixed_vocals", "Mixed Vocals"),
    ("instrumental", "Instrumental"),
    ("spoken_word", "Spoken Word"),
]


def default_options(category: str) -> List[Option]:
    """Fresh default options for one category; empty for moods, eras and languages."""
    require_category(category)
    if category == "genres":
        return [Option(id=i, category=category, label=label) for i, label in DEFAULT_GENRES]
    if category == "subgenres":
        return [Option(id=i, category=category, label=label, parent_id=parent)
                for i, label, parent in DEFAULT_SUBGENRES]
    if category == "tempos":
        return [Option(id=i, category=category, label=label, extra={"bpmRange": bpm})
                for i, label, bpm in DEFAULT_TEMPOS]
    if category == "vocals":
        return [Option(id=i, category=category, label=label) for i, label in DEFAULT_VOCALS]
    return []


def default_category_set() -> CategorySet:
    category_set = CategorySet()
    for category in CATEGORIES:
        category_set.replace_category(category, default_options(category))
    return category_set


def primary_genres(category_set: CategorySet) -> List[str]:
    """Sorted labels of genres that at least one subgenre points at."""
    labels = set()
    for genre in category_set.options("genres"):
        if category_set.children_of(genre.id):
            labels.add(genre.label)
    return sorted(labels)
