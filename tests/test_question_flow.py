from tastetrip.agents.question_flow import (
    DEFAULT_DURATION_OPTIONS,
    content_format_options,
    duration_options,
    filter_options_by_duration,
    is_complete,
    next_question,
    start_context,
    update_context,
    validate_constraints,
)
from tastetrip.schemas import QuestionContext


def _answer_all(context, answers):
    for question_id, answer in answers:
        outcome = update_context(context, question_id, answer)
        assert outcome.accepted, outcome.message
        context = outcome.context
    return context


def test_questions_run_in_fixed_order():
    context = start_context(themes=["food"], content_type="Food Blog")

    ids = [next_question(context, n).id for n in range(1, 5)]

    assert ids == ["duration", "budget", "contentFormat", "climate"]
    assert next_question(context, 5) is None
    assert next_question(context, 0) is None
    assert next_question(context, 4).multi_select is True


def test_low_daily_budget_is_rejected_at_budget_step():
    context = update_context(start_context(), "duration", "7 days").context
    assert context.duration == 7

    rejected = update_context(context, "budget", "$100")
    assert rejected.status == "rejected"
    assert "shorter trip" in rejected.message
    assert rejected.context == context
    assert rejected.context.budget is None

    accepted = update_context(context, "budget", "$1000")
    assert accepted.status == "accepted"
    assert accepted.context.daily_budget == 142
    assert accepted.context.currency == "$"
    assert accepted.context.previous_answers == {"duration": "7 days", "budget": "$1000"}


def test_daily_budget_is_commutative():
    duration_first = _answer_all(start_context(), [("duration", "1 week"), ("budget", "$1000")])
    budget_first = _answer_all(start_context(), [("budget", "$1000"), ("duration", "1 week")])

    assert duration_first.daily_budget == budget_first.daily_budget == 142


def test_duration_step_can_reject_after_budget():
    context = update_context(start_context(), "budget", "$200").context

    outcome = update_context(context, "duration", "2 weeks")

    assert outcome.status == "rejected"
    assert outcome.context.duration is None


def test_total_budget_floor():
    outcome = update_context(start_context(), "budget", "$40")

    assert outcome.status == "rejected"
    assert "too low" in outcome.message


def test_non_numeric_budget_is_rejected():
    outcome = update_context(start_context(), "budget", "Custom amount")

    assert outcome.status == "rejected"


def test_thin_daily_budget_gets_advisory():
    context = update_context(start_context(), "duration", "10 days").context

    outcome = update_context(context, "budget", "$400")

    assert outcome.status == "accepted_with_advisory"
    assert outcome.context.daily_budget == 40
    assert "Budget travel" in outcome.advisory


def test_daily_check_uses_face_value():
    context = update_context(start_context(), "duration", "7 days").context

    euros = update_context(context, "budget", "€200")
    assert euros.status == "rejected"
    assert euros.context.daily_budget is None

    rupees = update_context(context, "budget", "₹15000")
    assert rupees.status == "accepted"
    assert rupees.context.daily_budget == 2142

    taka = start_context(audience_location="Dhaka, Bangladesh")
    taka = update_context(taka, "duration", "7 days").context
    outcome = update_context(taka, "budget", "50000")
    assert outcome.accepted
    assert outcome.context.currency == "৳"
    assert outcome.context.daily_budget == 7142


def test_trailing_symbol_and_commas_are_parsed():
    outcome = update_context(start_context(), "budget", "1,500€")

    assert outcome.context.budget == 1500
    assert outcome.context.currency == "€"


def test_budget_options_follow_audience_currency():
    taka = next_question(start_context(audience_location="Bangladesh"), 2)
    rupee = next_question(start_context(audience_location="India"), 2)
    dollar = next_question(start_context(), 2)

    assert taka.options[0] == "৳500-1000"
    assert rupee.options[0] == "₹3000-8000"
    assert dollar.options[0] == "$200-500"
    assert dollar.options[-1] == "Custom amount"


def test_budget_options_drop_ranges_too_thin_for_duration():
    options = ["$200-500", "$500-1000", "$1000-2500", "Custom amount"]

    assert filter_options_by_duration(options, 30) == ["$1000-2500", "Custom amount"]

    context = update_context(start_context(), "duration", "1 month").context
    assert "$200-500" not in next_question(context, 2).options


def test_offered_budget_ranges_are_accepted_when_chosen():
    context = update_context(start_context(), "duration", "2 weeks").context
    options = next_question(context, 2).options

    assert "$200-500" not in options
    for option in options[:-1]:
        assert update_context(context, "budget", option).accepted, option


def test_local_currency_ranges_survive_duration_filter():
    context = start_context(audience_location="Bangladesh")
    context = update_context(context, "duration", "7 days").context

    options = next_question(context, 2).options

    assert options == ["৳500-1000", "৳1000-2500", "৳2500-5000", "৳5000-10000", "৳10000-20000", "Custom amount"]


def test_duration_options_depend_on_budget():
    assert duration_options(QuestionContext()) == DEFAULT_DURATION_OPTIONS

    rich = duration_options(QuestionContext(budget=1000, currency="$"))
    assert rich[:3] == ["1 day", "2 days", "3-4 days"]
    assert len(rich) <= 6

    tight = duration_options(QuestionContext(budget=150, currency="$"))
    assert tight == ["2 days", "4 days"]


def test_question_text_is_personalised():
    context = update_context(start_context(), "budget", "$1000").context
    assert next_question(context, 1).text == "With your $1000 budget, how long would you like to travel?"

    context = update_context(start_context(), "duration", "7 days").context
    assert next_question(context, 2).text == "For your 7-day trip, what's your total travel budget?"


def test_content_formats_put_current_type_first():
    context = start_context(themes=["food", "photography"], content_type="Food Blog")

    options = content_format_options(context)

    assert options[:2] == ["Food Blog", "Food & Culinary"]
    assert len(options) == 6
    assert content_format_options(start_context())[:4] == ["Photography", "Food", "Lifestyle", "Adventure"]


def test_constraint_warnings():
    context = _answer_all(
        start_context(),
        [("duration", "3 days"), ("budget", "$500"), ("contentFormat", "Luxury Travel")],
    )
    assert validate_constraints(context) == ["Luxury travel typically requires a budget above $1000."]

    outcome = update_context(context, "climate", ["Tropical/Sunny"])
    assert outcome.warnings == validate_constraints(context)
    assert is_complete(outcome.context)
