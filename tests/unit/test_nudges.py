# ============================================================================
# tests/unit/test_nudges.py
# ============================================================================
"""
Tests for nudge generation and the adherence score
"""

from mediguide.core.schemas import NudgeCategory, TimingBuckets, UserPreferences
from mediguide.nudges.adherence import calculate_adherence_score
from mediguide.nudges.nudge_generator import NudgeGenerator


class TestImplementationIntentions:
    """Habit-anchored dose reminders"""

    def test_morning_and_night(self, make_record):
        """Test morning plus night gives two implementation intentions"""
        record = make_record("Amlodipine", timing_buckets=TimingBuckets(morning=1, night=1))
        nudges = NudgeGenerator().generate([record])

        intents = [n for n in nudges if n.category == NudgeCategory.IMPLEMENTATION_INTENTION]
        assert len(intents) >= 2
        messages = {n.id: n.message for n in intents}
        assert messages["impl_intent_morning_Amlodipine"] == "With breakfast, take your Amlodipine 5mg"
        assert messages["impl_intent_night_Amlodipine"] == (
            "When you brush your teeth at night, take your Amlodipine 5mg"
        )

    def test_food_instruction_shapes_cue(self, make_record):
        """Test before-food instructions anchor before the meal"""
        record = make_record(food_instruction="before breakfast")
        nudge = NudgeGenerator().generate([record])[0]

        assert nudge.message == "Before breakfast, take your Amlodipine 5mg"
        assert nudge.evidence.plan_field == "timing_buckets.morning"

    def test_scheduled_time_from_preferences(self, make_record):
        """Test the scheduled time follows the user's meal times"""
        prefs = UserPreferences(breakfast_time="06:30")
        nudge = NudgeGenerator().generate([make_record()], prefs)[0]
        assert nudge.scheduled_time == "06:30"


class TestRanking:
    """Priority order and cap"""

    def test_never_more_than_limit(self, make_record):
        """Test many medications still give at most five nudges"""
        meds = [
            make_record(name, timing_buckets=TimingBuckets(morning=1, afternoon=1, evening=1))
            for name in ("Amlodipine", "Metformin", "Atorvastatin")
        ]
        nudges = NudgeGenerator().generate(meds)

        assert len(nudges) == 5
        assert all(n.category == NudgeCategory.IMPLEMENTATION_INTENTION for n in nudges)

    def test_sorted_by_priority(self, make_record):
        """Test higher priority first"""
        nudges = NudgeGenerator(limit=10).generate([make_record()])
        priorities = [n.priority for n in nudges]
        assert priorities == sorted(priorities, reverse=True)

    def test_custom_limit(self, make_record):
        """Test the limit is configurable"""
        assert len(NudgeGenerator(limit=2).generate([make_record()])) == 2

    def test_positive_reinforcement_with_patterns(self, make_record):
        """Test adherence patterns add a reinforcement nudge"""
        nudges = NudgeGenerator().generate([make_record()], adherence_patterns=[])
        assert any(n.category == NudgeCategory.POSITIVE_REINFORCEMENT for n in nudges)

        nudges = NudgeGenerator().generate([make_record()])
        assert not any(n.category == NudgeCategory.POSITIVE_REINFORCEMENT for n in nudges)

    def test_why_it_matters_known_drug(self, make_record):
        """Test drug-specific motivation text"""
        nudges = NudgeGenerator(limit=10).generate([make_record("Metformin")])
        why = [n for n in nudges if n.id == "why_matters_Metformin"]
        assert why[0].message == "Taking Metformin as prescribed helps manage blood sugar levels"

    def test_duration_reminder(self, make_record):
        """Test a fixed duration adds a course reminder, 'As directed' does not"""
        nudges = NudgeGenerator(limit=10).generate([make_record(duration="30 days")])
        assert any(n.message == "Complete the full 30 days course for best results" for n in nudges)

        nudges = NudgeGenerator(limit=10).generate([make_record(duration="As directed")])
        assert not any(n.id.startswith("duration_reminder") for n in nudges)

    def test_no_medications(self):
        """Test an empty plan gives no nudges"""
        assert NudgeGenerator().generate([]) == []


class TestAdherenceScore:
    """Regimen complexity"""

    def test_simple_regimen(self, make_record):
        """Test one once-daily medication scores 100"""
        score = calculate_adherence_score([make_record()])

        assert score.score == 100
        assert score.factors == []
        assert score.explanation == "Simple medication regimen with high expected adherence."

    def test_complex_regimen(self, make_record):
        """Test many multi-dose medications lower the score"""
        all_day = TimingBuckets(morning=1, afternoon=1, evening=1, night=1)
        meds = [make_record(f"Drug{i}", frequency="QDS", timing_buckets=all_day) for i in range(6)]
        score = calculate_adherence_score(meds)

        # 100 - 15 (count) - 30 (multi-dose) - 8 (spread)
        assert score.score == 47
        assert len(score.factors) == 3

    def test_prn(self, make_record):
        """Test as-needed medications are penalised"""
        score = calculate_adherence_score([make_record(frequency="PRN")])
        assert score.score == 97

    def test_tablet_count_is_not_dose_count(self, make_record):
        """Test 3-0-0 is one dose time, not a multi-dose medication"""
        record = make_record(frequency="3-0-0", timing_buckets=TimingBuckets(morning=3))
        score = calculate_adherence_score([record])

        assert score.score == 100
        assert score.factors == []

    def test_three_dose_times_from_pattern(self, make_record):
        """Test 1-1-1 counts as 3+ doses per day without a frequency code"""
        buckets = TimingBuckets(morning=1, afternoon=1, evening=1)
        score = calculate_adherence_score([make_record(frequency="1-1-1", timing_buckets=buckets)])

        # 100 - 5 (multi-dose) - 4 (three times of day)
        assert score.score == 91
        assert "1 medication(s) require 3+ doses per day" in score.factors

    def test_score_bounds(self, make_record):
        """Test the score never drops below zero"""
        all_day = TimingBuckets(morning=1, afternoon=1, evening=1, night=1)
        meds = [make_record(f"Drug{i}", frequency="PRN", timing_buckets=all_day, food_instruction="ac")
                for i in range(30)]
        assert 0 <= calculate_adherence_score(meds).score <= 100
