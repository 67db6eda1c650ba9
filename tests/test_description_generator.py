"""
Unit tests for DescriptionGenerator (coffee_discovery/generation/description_generator.py).
"""
from conftest import openai_raising, openai_returning
from coffee_discovery.data.models import SearchPreference
from coffee_discovery.generation.description_generator import (
    FALLBACK_DESCRIPTION,
    FALLBACK_SEARCH_QUERY,
    CoffeeDetails,
    DescriptionGenerator,
    fallback_search_query,
)


class TestGenerate:

    def test_returns_model_text(self, test_config):
        client = openai_returning("  Bright and floral with a honeyed finish.  ")
        text = DescriptionGenerator(client=client, config=test_config).generate(
            CoffeeDetails(name="Yirgacheffe", origin="Ethiopia", roast_level="light", flavor_notes=["jasmine"])
        )
        assert text == "Bright and floral with a honeyed finish."

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 150
        user_message = kwargs["messages"][1]["content"]
        assert "Name: Yirgacheffe" in user_message
        assert "Flavor Notes: jasmine" in user_message

    def test_unknown_attributes_use_defaults(self, test_config):
        client = openai_returning("Nice.")
        DescriptionGenerator(client=client, config=test_config).generate(CoffeeDetails(name="Mystery"))

        user_message = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "Origin: Unknown" in user_message
        assert "Roast Level: Medium" in user_message
        assert "Flavor Notes: Not specified" in user_message

    def test_model_error_returns_fallback(self, test_config):
        generator = DescriptionGenerator(client=openai_raising(TimeoutError()), config=test_config)
        assert generator.generate(CoffeeDetails(name="X")) == FALLBACK_DESCRIPTION

    def test_empty_text_returns_fallback(self, test_config):
        generator = DescriptionGenerator(client=openai_returning("   "), config=test_config)
        assert generator.generate(CoffeeDetails(name="X")) == FALLBACK_DESCRIPTION


class TestSearchQuery:

    def test_returns_model_query(self, test_config):
        client = openai_returning("ethiopian light roast coffee beans")
        query = DescriptionGenerator(client=client, config=test_config).generate_search_query(
            SearchPreference(roast_level="light", origin="Ethiopia")
        )
        assert query == "ethiopian light roast coffee beans"
        assert client.chat.completions.create.call_args.kwargs["max_tokens"] == 30

    def test_model_error_builds_query_from_preferences(self, test_config):
        generator = DescriptionGenerator(client=openai_raising(RuntimeError()), config=test_config)
        query = generator.generate_search_query(SearchPreference(roast_level="dark", origin="Sumatra", acidity="low"))
        assert query == "Sumatra dark roast low acidity coffee beans"

    def test_fallback_without_preferences(self):
        assert fallback_search_query(SearchPreference.empty()) == FALLBACK_SEARCH_QUERY
