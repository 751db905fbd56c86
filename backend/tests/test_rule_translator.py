"""
CRM - Rule Translator

Tests couverts:
1. Réécriture "last N days" (référence = now - N jours)
2. Nettoyage de la sortie générée (markdown, ISODate, new Date)
3. Compilation: champs / opérateurs autorisés, cast des dates
4. translate_rules de bout en bout avec un générateur simulé
"""

import json
import re
import pytest
from datetime import datetime, timedelta

from services.errors import GenerationError, TranslationError, ValidationError
from services.rule_translator import (
    ALLOWED_FIELDS,
    build_prompt,
    clean_generated_json,
    compile_predicate,
    normalize_rules,
    rewrite_relative_dates,
    translate_rules,
)

NOW = datetime(2026, 10, 18, 12, 30, 15, 123456)
ISO_IN_PROMPT = re.compile(r'after "([^"]+)"')


class TestRewriteRelativeDates:

    def test_last_n_days_is_rewritten(self):
        text = rewrite_relative_dates("customers who joined in the last 30 days", NOW)
        assert text == 'customers who joined in the after "2026-09-18T12:30:15.123Z"'

    def test_case_insensitive_and_singular(self):
        text = rewrite_relative_dates("active in the LAST 1 day", NOW)
        assert text == 'active in the after "2026-10-17T12:30:15.123Z"'

    def test_only_first_occurrence_rewritten(self):
        text = rewrite_relative_dates("joined in the last 10 days or active in the last 5 days", NOW)
        assert text.count("after ") == 1
        assert "last 5 days" in text

    def test_text_without_phrase_unchanged(self):
        assert rewrite_relative_dates("spent more than 500", NOW) == "spent more than 500"


class TestNormalizeRules:

    def test_list_joined_with_and(self):
        assert normalize_rules(["spent > 100", "visited > 3"]) == "spent > 100 and visited > 3"

    @pytest.mark.parametrize("rules", [None, "", "   ", [], ["", "  "]])
    def test_empty_rules_rejected(self, rules):
        with pytest.raises(ValidationError):
            normalize_rules(rules)


class TestCleanGeneratedJson:

    def test_markdown_fence_removed(self):
        raw = '```json\n{"totalSpend": {"$gt": 1000}}\n```'
        assert clean_generated_json(raw) == {"totalSpend": {"$gt": 1000}}

    def test_isodate_wrapper_unwrapped(self):
        raw = '{"joinedAt": {"$gte": ISODate("2026-09-18T00:00:00.000Z")}}'
        assert clean_generated_json(raw) == {"joinedAt": {"$gte": "2026-09-18T00:00:00.000Z"}}

    def test_new_date_wrapper_unwrapped(self):
        raw = '{"lastActive": {"$lt": new Date("2026-01-01")}}'
        assert clean_generated_json(raw) == {"lastActive": {"$lt": "2026-01-01"}}

    def test_invalid_json_raises(self):
        with pytest.raises(TranslationError):
            clean_generated_json("db.customers.find({totalSpend: {$gt: 5}})")

    def test_non_object_raises(self):
        with pytest.raises(TranslationError):
            clean_generated_json("[1, 2, 3]")


class TestCompilePredicate:

    def test_date_strings_cast_to_datetime(self):
        query = compile_predicate({"joinedAt": {"$gte": "2026-09-18T12:30:15.123Z"}})
        assert query == {"joinedAt": {"$gte": datetime(2026, 9, 18, 12, 30, 15, 123000)}}

    def test_offset_dates_normalized_to_utc(self):
        query = compile_predicate({"lastActive": "2026-01-01T02:00:00+02:00"})
        assert query == {"lastActive": datetime(2026, 1, 1, 0, 0, 0)}

    def test_extended_json_date(self):
        query = compile_predicate({"joinedAt": {"$lt": {"$date": "2026-01-01T00:00:00Z"}}})
        assert query["joinedAt"]["$lt"] == datetime(2026, 1, 1)

    def test_numeric_and_logical_operators_kept(self):
        source = {"$or": [{"totalSpend": {"$gt": 1000}}, {"visitCount": {"$gte": 3, "$lt": 10}}]}
        assert compile_predicate(source) == source

    def test_in_operator_dates_cast(self):
        query = compile_predicate({"joinedAt": {"$in": ["2026-01-01", "2026-02-01"]}})
        assert query["joinedAt"]["$in"] == [datetime(2026, 1, 1), datetime(2026, 2, 1)]

    def test_not_operator_compiled(self):
        query = compile_predicate({"lastActive": {"$not": {"$gte": "2026-01-01"}}})
        assert query == {"lastActive": {"$not": {"$gte": datetime(2026, 1, 1)}}}

    def test_regex_kept(self):
        source = {"email": {"$regex": "@gmail\\.com$", "$options": "i"}}
        assert compile_predicate(source) == source

    def test_unknown_field_rejected(self):
        with pytest.raises(TranslationError, match="Unsupported field"):
            compile_predicate({"password": "x"})

    def test_unknown_nested_field_rejected(self):
        with pytest.raises(TranslationError):
            compile_predicate({"$and": [{"totalSpend": {"$gt": 1}}, {"city": "Paris"}]})

    @pytest.mark.parametrize("operator", ["$where", "$expr", "$function"])
    def test_dangerous_operators_rejected(self, operator):
        with pytest.raises(TranslationError):
            compile_predicate({"totalSpend": {operator: "1"}})

    def test_top_level_where_rejected(self):
        with pytest.raises(TranslationError):
            compile_predicate({"$where": "this.totalSpend > 1"})

    def test_invalid_date_rejected(self):
        with pytest.raises(TranslationError, match="Invalid date"):
            compile_predicate({"joinedAt": {"$gte": "last month"}})

    def test_numeric_strings_cast_to_numbers(self):
        query = compile_predicate({"totalSpend": {"$gt": "1000"}, "visitCount": "5"})
        assert query == {"totalSpend": {"$gt": 1000}, "visitCount": 5}
        assert isinstance(query["visitCount"], int)

    def test_decimal_string_cast_to_float(self):
        query = compile_predicate({"totalSpend": {"$lte": " 99.5 "}})
        assert query == {"totalSpend": {"$lte": 99.5}}

    def test_numeric_in_list_cast(self):
        query = compile_predicate({"visitCount": {"$in": ["1", 2, "3.5"]}, "totalSpend": {"$nin": ["0"]}})
        assert query == {"visitCount": {"$in": [1, 2, 3.5]}, "totalSpend": {"$nin": [0]}}

    def test_numeric_not_operator_cast(self):
        query = compile_predicate({"totalSpend": {"$not": {"$lt": "10"}}})
        assert query == {"totalSpend": {"$not": {"$lt": 10}}}

    @pytest.mark.parametrize("value", ["a lot", True, [100], {"amount": 5}])
    def test_invalid_number_rejected(self, value):
        with pytest.raises(TranslationError, match="Invalid number"):
            compile_predicate({"totalSpend": {"$gt": value}})

    def test_exists_on_number_field_untouched(self):
        assert compile_predicate({"visitCount": {"$exists": True}}) == {"visitCount": {"$exists": True}}

    def test_empty_logical_list_rejected(self):
        with pytest.raises(TranslationError):
            compile_predicate({"$or": []})


class TestPrompt:

    def test_prompt_lists_only_allowed_fields(self):
        prompt = build_prompt("spent more than 100")
        for field in ALLOWED_FIELDS:
            assert f"- {field} (" in prompt
        assert 'Natural language: "spent more than 100"' in prompt


class TestTranslateRules:

    @pytest.mark.asyncio
    async def test_last_n_days_bound_matches_request_time(self, fake_rules_generator):
        def answer(prompt):
            iso = ISO_IN_PROMPT.search(prompt).group(1)
            return f'```json\n{{"joinedAt": {{"$gte": ISODate("{iso}")}}}}\n```'

        fake = fake_rules_generator(answer)
        query = await translate_rules("customers who joined in the last 30 days", now=NOW)

        expected = NOW - timedelta(days=30)
        assert query["joinedAt"]["$gte"] == expected.replace(microsecond=123000)
        assert "last 30 days" not in fake.prompts[0]

    @pytest.mark.asyncio
    async def test_bound_independent_of_target_field(self, fake_rules_generator):
        def answer(prompt):
            iso = ISO_IN_PROMPT.search(prompt).group(1)
            return json.dumps({"lastActive": {"$gt": iso}})

        fake_rules_generator(answer)
        query = await translate_rules("active in the last 7 days", now=NOW)
        assert query["lastActive"]["$gt"] == (NOW - timedelta(days=7)).replace(microsecond=123000)

    @pytest.mark.asyncio
    async def test_generation_error_becomes_translation_error(self, fake_rules_generator):
        fake_rules_generator(GenerationError("Text generation API error: 503"))
        with pytest.raises(TranslationError, match="503"):
            await translate_rules("spent more than 100")

    @pytest.mark.asyncio
    async def test_unparsable_output_raises(self, fake_rules_generator):
        fake_rules_generator("Sorry, I cannot help with that.")
        with pytest.raises(TranslationError):
            await translate_rules("spent more than 100")

    @pytest.mark.asyncio
    async def test_empty_rules_never_reach_generator(self, fake_rules_generator):
        fake = fake_rules_generator()
        with pytest.raises(ValidationError):
            await translate_rules("")
        assert fake.prompts == []
