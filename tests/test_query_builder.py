"""Tests for query assembly, with canned fragments and with the bundled templates."""

import json
import logging

import pytest

from catalog_search.catalog import Taxon
from catalog_search.errors import QueryAssemblyError
from catalog_search.filters import RequestFilterSource
from catalog_search.fragments import JinjaFragmentRenderer
from catalog_search.locale import StaticLocaleContext
from catalog_search.query_builder import QueryBuilder


@pytest.fixture
def builder(renderer, locale_context):
    return QueryBuilder(renderer, locale_context)


def test_search_query_without_options_has_only_query(builder, renderer):
    query = builder.build_search_query("shoe")

    assert query == {"query": {"match_all": {}}}
    (params,) = renderer.calls_for("search/query")
    assert params == {"search_term": "shoe", "filters": {}, "locale_code": "en_US"}


def test_sort_fragments_keep_caller_order(builder, renderer):
    query = builder.build_search_query("shoe", sorting={"price": "desc", "name": "asc"})

    assert query["sort"] == [{"price": {"order": "desc"}}, {"name": {"order": "asc"}}]
    assert [call[0] for call in renderer.calls[1:]] == ["search/sort/price", "search/sort/name"]


def test_empty_sorting_emits_no_sort(builder):
    assert "sort" not in builder.build_search_query("shoe", sorting={})


def test_from_and_size_are_independent(builder):
    assert builder.build_search_query("shoe", from_=20)["from"] == 20
    assert "size" not in builder.build_search_query("shoe", from_=20)
    only_size = builder.build_search_query("shoe", size=5)
    assert only_size["size"] == 5
    assert "from" not in only_size


def test_aggregates_merge_all_three_fragments(builder, renderer):
    query = builder.build_search_query("shoe", with_aggregates=True)

    assert set(query["aggs"]) == {"attributes", "translated-attributes", "options"}
    assert renderer.calls_for("search/aggs/options") == [{"search_term": "shoe", "locale_code": "en_US"}]


def test_no_aggregates_key_without_flag(builder):
    assert "aggs" not in builder.build_search_query("shoe", with_aggregates=False)


def test_aggregate_key_collision_last_fragment_wins(locale_context, make_renderer):
    renderer_fragments = {
        "search/aggs/attributes": json.dumps({"shared": {"source": "attributes"}}),
        "search/aggs/translated-attributes": json.dumps({"shared": {"source": "translated"}}),
        "search/aggs/options": json.dumps({"options": {}}),
    }
    builder = QueryBuilder(make_renderer(renderer_fragments), locale_context)

    aggs = builder.build_search_query("shoe", with_aggregates=True)["aggs"]

    assert aggs == {"shared": {"source": "translated"}, "options": {}}


def test_explicit_filters_win_over_ambient_source(renderer, locale_context):
    ambient = RequestFilterSource({"size": ["m"]})
    builder = QueryBuilder(renderer, locale_context, ambient)

    builder.build_search_query("shoe", filters={"color": ["red"]})
    builder.build_search_query("shoe")

    explicit, defaulted = renderer.calls_for("search/query")
    assert explicit["filters"] == {"color": ["red"]}
    assert defaulted["filters"] == {"size": ["m"]}


def test_taxon_query_uses_taxon_fragments(builder, renderer):
    taxon = Taxon(id=1, code="shoes")

    query = builder.build_taxon_query(taxon, 0, 9, {"position": "asc"}, True, {"color": ["red"]})

    assert query["from"] == 0
    assert query["size"] == 9
    assert query["sort"] == [{"position": {"order": "asc"}}]
    assert set(query["aggs"]) == {"attributes", "translated-attributes", "options"}
    (params,) = renderer.calls_for("taxon/query")
    assert params["taxon"] is taxon
    assert params["filters"] == {"color": ["red"]}


def test_malformed_fragment_is_fatal(locale_context, make_renderer):
    builder = QueryBuilder(make_renderer({"search/query": "{not json"}), locale_context)

    with pytest.raises(QueryAssemblyError) as excinfo:
        builder.build_search_query("shoe")
    assert excinfo.value.fragment_id == "search/query"


def test_assembled_query_is_logged(builder, caplog):
    with caplog.at_level(logging.DEBUG, logger="catalog_search.query_builder"):
        builder.build_search_query("shoe", size=3)

    assert 'Built search query: {"query": {"match_all": {}}, "size": 3}' in caplog.text


def test_bundled_templates_render_search_query():
    builder = QueryBuilder(JinjaFragmentRenderer(), StaticLocaleContext("it_IT"))

    query = builder.build_search_query(
        'scarpe "rosse"',
        from_=9,
        size=9,
        sorting={"price": "desc", "name": "asc", "_score": "desc"},
        with_aggregates=True,
        filters={"color": ["color_red", "color_blue"], "material": ["leather"]},
    )

    must = query["query"]["bool"]["must"][0]["multi_match"]
    assert must["query"] == 'scarpe "rosse"'
    assert "name.it_IT^3" in must["fields"]
    filters = query["query"]["bool"]["filter"]
    assert filters[0] == {"term": {"enabled": True}}
    assert len(filters) == 3
    assert list(query["sort"][0]) == ["default-variant.price.price"]
    assert query["sort"][0]["default-variant.price.price"]["order"] == "desc"
    assert list(query["sort"][1]) == ["name.it_IT.keyword"]
    assert query["sort"][2] == {"_score": {"order": "desc"}}
    assert set(query["aggs"]) == {"attributes", "translated-attributes", "options"}


def test_bundled_templates_render_taxon_query():
    builder = QueryBuilder(JinjaFragmentRenderer(), StaticLocaleContext("en_US"))

    query = builder.build_taxon_query(Taxon(id=1, code="shoes"), sorting={"position": "asc"}, filters={})

    taxon_filter = query["query"]["bool"]["filter"][1]["nested"]
    assert taxon_filter["query"] == {"term": {"taxons.code": "shoes"}}
    position = query["sort"][0]["taxons.position"]
    assert position["order"] == "asc"
    assert position["nested"]["filter"] == {"term": {"taxons.code": "shoes"}}


def test_unknown_sort_field_is_an_assembly_error():
    builder = QueryBuilder(JinjaFragmentRenderer(), StaticLocaleContext("en_US"))

    with pytest.raises(QueryAssemblyError):
        builder.build_search_query("shoe", sorting={"popularity": "desc"})


def test_hostile_locale_is_rejected_before_rendering(renderer):
    builder = QueryBuilder(renderer, StaticLocaleContext('en_US.keyword", "size": 1}}, "injected": {"terms": {"field": "x'))

    with pytest.raises(QueryAssemblyError) as excinfo:
        builder.build_taxon_query(Taxon(id=1, code="shoes"), with_aggregates=True)
    assert excinfo.value.fragment_id == "taxon/query"
    assert renderer.calls == []


def _attribute_filter_fields(clause):
    fields = {}
    for should in clause["bool"]["should"]:
        nested = should["nested"]
        if nested["path"] in ("attributes", "translated-attributes"):
            (terms,) = [part["terms"] for part in nested["query"]["bool"]["filter"] if "terms" in part]
            fields[nested["path"]] = next(iter(terms))
    return fields


def test_attribute_filters_match_the_faceted_fields():
    builder = QueryBuilder(JinjaFragmentRenderer(), StaticLocaleContext("en_US"))

    query = builder.build_search_query("shoe", with_aggregates=True, filters={"care": ["Hand wash"]})

    fields = _attribute_filter_fields(query["query"]["bool"]["filter"][1])
    facet_fields = {
        name: query["aggs"][name]["aggs"]["filterable"]["aggs"]["codes"]["aggs"]["values"]["terms"]["field"]
        for name in ("attributes", "translated-attributes")
    }
    assert fields == facet_fields
    assert fields["translated-attributes"] == "translated-attributes.values.en_US.text-value.keyword"
