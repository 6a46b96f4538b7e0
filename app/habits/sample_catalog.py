"""Built-in sample catalog served only in degraded mode.

When the primary-language content document cannot be fetched, the loader
returns these records (flagged as static_sample / degraded) so callers can
render something. Not a substitute for the content source.
"""

from __future__ import annotations

from app.habits.models import Difficulty, GoalCategory, HabitRecord, HabitTranslation

SAMPLE_LANGUAGES: frozenset[str] = frozenset({"en", "de"})

SAMPLE_HABITS: tuple[HabitRecord, ...] = (
    HabitRecord(
        id="sleep_001_478_breathing",
        goal_category=GoalCategory.better_sleep,
        effectiveness_score=9.2,
        effectiveness_rank=1,
        is_primary_recommendation=True,
        difficulty=Difficulty.trivial,
        time_minutes=4,
        goal_tags=["sleep_quality", "stress_reduction"],
        translations={
            "en": HabitTranslation(
                title="4-7-8 Breathing for Sleep",
                description="Simple breathing technique for faster sleep onset",
                research_summary="Stanford study showed 37% improvement in sleep onset time",
                research_source="Stanford Sleep Research Lab (2023)",
                why_it_works="Activates parasympathetic nervous system",
                quick_start="Inhale 4, hold 7, exhale 8 seconds",
                time_to_complete="4 minutes",
                optimal_timing="Before bedtime",
                difficulty_level="beginner",
                category="Sleep",
                research_effectiveness="Reduces sleep onset by 37%",
                progression_tips="Start with 2 cycles, build to 8",
            ),
            "de": HabitTranslation(
                title="4-7-8 Atmung für den Schlaf",
                description="Einfache Atemtechnik für schnelleres Einschlafen",
                research_summary="Stanford Studie zeigte 37% Verbesserung der Einschlafzeit",
                research_source="Stanford Sleep Research Lab (2023)",
                why_it_works="Aktiviert das parasympathische Nervensystem",
                quick_start="4 Sekunden einatmen, 7 halten, 8 ausatmen",
                time_to_complete="4 Minuten",
                optimal_timing="Vor dem Schlafengehen",
                difficulty_level="beginner",
                category="Schlaf",
                research_effectiveness="Reduziert die Einschlafzeit um 37%",
                progression_tips="Mit 2 Zyklen beginnen, auf 8 steigern",
            ),
        },
    ),
    HabitRecord(
        id="moving_001_post_meal_walk",
        goal_category=GoalCategory.get_moving,
        effectiveness_score=8.6,
        effectiveness_rank=1,
        is_primary_recommendation=True,
        difficulty=Difficulty.easy,
        time_minutes=10,
        goal_tags=["physical_activity"],
        translations={
            "en": HabitTranslation(
                title="10-Minute Walk After Meals",
                description="A short walk after eating to get the body moving",
                research_summary="Meta-analysis of 7 trials found post-meal walks lower blood sugar spikes by 22%",
                research_source="Sports Medicine (2022)",
                why_it_works="Working muscles absorb glucose right after a meal",
                quick_start="Put on your shoes and walk for 10 minutes after lunch",
                time_to_complete="10 minutes",
                optimal_timing="Right after a meal",
                difficulty_level="beginner",
                category="Movement",
                research_effectiveness="Lowers post-meal glucose by 22%",
                progression_tips="Add a second walk after dinner once lunch walks stick",
            ),
            "de": HabitTranslation(
                title="10 Minuten Spaziergang nach dem Essen",
                description="Ein kurzer Spaziergang nach dem Essen bringt den Körper in Bewegung",
                research_summary="Meta-Analyse von 7 Studien: Spaziergänge nach dem Essen senken Blutzuckerspitzen um 22%",
                research_source="Sports Medicine (2022)",
                why_it_works="Arbeitende Muskeln nehmen Glukose direkt nach der Mahlzeit auf",
                quick_start="Schuhe an und nach dem Mittagessen 10 Minuten gehen",
                time_to_complete="10 Minuten",
                optimal_timing="Direkt nach einer Mahlzeit",
                difficulty_level="beginner",
                category="Bewegung",
                research_effectiveness="Senkt den Blutzucker nach dem Essen um 22%",
                progression_tips="Einen zweiten Spaziergang nach dem Abendessen ergänzen",
            ),
        },
    ),
    HabitRecord(
        id="feel_001_three_good_things",
        goal_category=GoalCategory.feel_better,
        effectiveness_score=8.1,
        effectiveness_rank=1,
        is_primary_recommendation=True,
        difficulty=Difficulty.trivial,
        time_minutes=5,
        goal_tags=["improve_mood", "gratitude"],
        translations={
            "en": HabitTranslation(
                title="Three Good Things",
                description="Write down three things that went well today",
                research_summary="Randomized trial showed increased happiness and reduced depressive symptoms for 6 months",
                research_source="American Psychologist (2005)",
                why_it_works="Shifts attention toward positive events",
                quick_start="Before bed, note three good things and why they happened",
                time_to_complete="5 minutes",
                optimal_timing="Evening",
                difficulty_level="beginner",
                category="Wellbeing",
                research_effectiveness="Effects lasted 6 months",
                progression_tips="Once it is routine, add one sentence on your role in each",
            ),
            "de": HabitTranslation(
                title="Drei gute Dinge",
                description="Schreiben Sie drei Dinge auf, die heute gut gelaufen sind",
                research_summary="Randomisierte Studie zeigte mehr Zufriedenheit und weniger depressive Symptome über 6 Monate",
                research_source="American Psychologist (2005)",
                why_it_works="Lenkt die Aufmerksamkeit auf positive Ereignisse",
                quick_start="Vor dem Schlafen drei gute Dinge notieren und warum sie passiert sind",
                time_to_complete="5 Minuten",
                optimal_timing="Abends",
                difficulty_level="beginner",
                category="Wohlbefinden",
                research_effectiveness="Wirkung hielt 6 Monate an",
                progression_tips="Später pro Eintrag einen Satz zu Ihrem eigenen Beitrag ergänzen",
            ),
        },
    ),
)


def sample_habits() -> list[HabitRecord]:
    return [habit.model_copy(deep=True) for habit in SAMPLE_HABITS]
