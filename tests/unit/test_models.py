"""Tests for table definitions and the schema catalog."""

import pytest

from cmsschema.constants import Tables
from cmsschema.exceptions import CatalogError
from cmsschema.schema.catalog import CMS_CATALOG
from cmsschema.schema.models import (
    PrimaryKeyDefinition,
    SchemaCatalog,
    column,
    define_table,
    foreign_key,
    index,
)
from cmsschema.types import DbType
from tests.helpers import make_two_table_catalog


class TestDefineTable:
    """Tests for define_table() name stamping and checks."""

    def test_stamps_table_name_on_columns(self):
        table = define_table("Thing", columns=[column("id", DbType.INT)])
        assert table.columns[0].table_name == "Thing"

    def test_default_key_and_index_names(self):
        table = define_table(
            "Child",
            columns=[column("id", DbType.INT), column("parentId", DbType.INT)],
            primary_key="id",
            indexes=[index("parentId")],
            foreign_keys=[foreign_key("parentId", "Child")],
        )
        assert table.primary_key.name == "PK_Child"
        assert table.indexes[0].name == "IX_Child_parentId"
        assert table.indexes[0].table_name == "Child"
        assert table.foreign_keys[0].name == "FK_Child_Child_id"
        assert table.foreign_keys[0].table_name == "Child"

    def test_primary_key_name_stamped_only_on_key_columns(self):
        table = define_table(
            "Thing",
            columns=[column("id", DbType.INT), column("name", DbType.STRING)],
            primary_key="id",
        )
        assert table.get_column("id").primary_key_name == "PK_Thing"
        assert table.get_column("id").is_primary_key
        assert table.get_column("name").primary_key_name is None

    def test_composite_primary_key(self):
        table = define_table(
            "Link",
            columns=[column("a", DbType.INT), column("b", DbType.INT)],
            primary_key=["a", "b"],
            primary_key_name_override="PK_link",
        )
        assert table.primary_key.columns == ("a", "b")
        assert all(c.primary_key_name == "PK_link" for c in table.columns)

    def test_explicit_primary_key_definition(self):
        pk = PrimaryKeyDefinition(name="PK_custom", columns=("id",), clustered=False)
        table = define_table("T", columns=[column("id", DbType.INT)], primary_key=pk)
        assert table.primary_key is pk

    def test_unknown_key_column_rejected(self):
        with pytest.raises(CatalogError, match="unknown column 'missing'"):
            define_table("T", columns=[column("id", DbType.INT)], primary_key="missing")

    def test_unknown_index_column_rejected(self):
        with pytest.raises(CatalogError):
            define_table("T", columns=[column("id", DbType.INT)], indexes=[index("nope")])

    def test_identity_must_be_integer(self):
        with pytest.raises(CatalogError, match="integer"):
            define_table("T", columns=[column("id", DbType.GUID, identity=True)])

    def test_get_column_is_case_insensitive(self):
        table = define_table("T", columns=[column("userLogin", DbType.STRING)])
        assert table.get_column("USERLOGIN").name == "userLogin"
        assert table.get_column("other") is None

    def test_identity_column(self):
        table = define_table(
            "T",
            columns=[column("id", DbType.INT, identity=True), column("x", DbType.INT)],
        )
        assert table.has_identity
        assert table.identity_column.name == "id"


class TestSchemaCatalog:
    """Tests for catalog ordering rules."""

    def test_iteration_and_reverse_order(self):
        catalog = make_two_table_catalog()
        assert [t.name for t in catalog] == ["TableA", "TableB"]
        assert [t.name for t in reversed(catalog)] == ["TableB", "TableA"]
        assert len(catalog) == 2

    def test_foreign_key_to_later_table_rejected(self):
        a, b = make_two_table_catalog()
        with pytest.raises(CatalogError, match="not declared before it"):
            SchemaCatalog((b, a))

    def test_duplicate_table_names_rejected_case_insensitively(self):
        a, _ = make_two_table_catalog()
        other = define_table("tablea", columns=[column("id", DbType.INT)])
        with pytest.raises(CatalogError, match="Duplicate"):
            SchemaCatalog((a, other))

    def test_self_reference_allowed(self):
        table = define_table(
            "Tree",
            columns=[column("id", DbType.INT), column("parentId", DbType.INT)],
            primary_key="id",
            foreign_keys=[foreign_key("parentId", "Tree")],
        )
        assert len(SchemaCatalog((table,))) == 1

    def test_get_table_case_insensitive(self):
        catalog = make_two_table_catalog()
        assert catalog.get_table("tableb").name == "TableB"
        assert catalog.get_table("nope") is None

    def test_without_drops_a_leaf_table(self):
        catalog = make_two_table_catalog().without("TableB")
        assert catalog.table_names() == ["TableA"]

    def test_without_parent_table_breaks_order(self):
        with pytest.raises(CatalogError):
            make_two_table_catalog().without("TableA")

    def test_key_name_listings(self):
        catalog = make_two_table_catalog()
        assert catalog.primary_key_names() == ["PK_TableA", "PK_TableB"]
        assert catalog.foreign_key_names() == ["FK_TableB_TableA_id"]
        assert catalog.index_names() == ["IX_TableA_name", "IX_TableB_aId"]


class TestCmsCatalog:
    """Sanity checks on the built-in catalog."""

    def test_user_table_comes_first(self):
        assert CMS_CATALOG.table_names()[0] == Tables.USER

    def test_contains_every_known_table(self):
        names = {n.casefold() for n in CMS_CATALOG.table_names()}
        for attr in vars(Tables):
            if attr.isupper():
                assert getattr(Tables, attr).casefold() in names

    def test_all_names_follow_prefix_conventions(self):
        assert all(n.startswith("PK_") for n in CMS_CATALOG.primary_key_names())
        assert all(n.startswith("FK_") for n in CMS_CATALOG.foreign_key_names())
        assert all(n.startswith("IX_") for n in CMS_CATALOG.index_names())

    def test_media_version_keyed_by_content_version(self):
        media = CMS_CATALOG.get_table(Tables.MEDIA_VERSION)
        assert media.primary_key.columns == ("id",)
        assert media.foreign_keys[0].referenced_table == Tables.CONTENT_VERSION
