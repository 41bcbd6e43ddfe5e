import tempfile
import unittest
from pathlib import Path

from snp_reference import REFERENCE_PATH, ReferenceEntry, ReferenceTable, as_reference_table, load_reference


class ReferenceTableTests(unittest.TestCase):
    def test_lookup_is_case_insensitive_and_first_match(self) -> None:
        table = ReferenceTable.from_records(
            [
                {"rsid": "rs10", "effect_allele": "T", "gene": "A1"},
                {"rsid": "RS10", "effect_allele": "C", "gene": "A2"},
            ]
        )
        entry = table.lookup(" Rs10 ")
        self.assertIsNotNone(entry)
        self.assertEqual(entry.effect_allele, "T")
        self.assertEqual(entry.gene, "A1")
        self.assertEqual(len(table), 2)
        self.assertIn("rs10", table)
        self.assertNotIn("RS11", table)

    def test_accepts_display_column_names(self) -> None:
        entry = ReferenceEntry.from_record({"RS ID": "rs4680", "Effect Allele": "A", "Gene": "COMT"})
        self.assertEqual(entry, ReferenceEntry("RS4680", "A", None, "COMT", None))
        self.assertTrue(entry.has_effect_allele)

    def test_blank_effect_allele(self) -> None:
        entry = ReferenceEntry.from_record({"rsid": "RS1", "effect_allele": "   ", "gene": ""})
        self.assertFalse(entry.has_effect_allele)
        self.assertIsNone(entry.gene)

    def test_as_reference_table_variants(self) -> None:
        table = ReferenceTable([ReferenceEntry("RS1", "A")])
        self.assertIs(as_reference_table(table), table)
        self.assertEqual(len(as_reference_table(None)), 0)
        mixed = as_reference_table([ReferenceEntry("RS1", "A"), {"rsid": "RS2", "effect_allele": "G"}])
        self.assertEqual([entry.rsid for entry in mixed], ["RS1", "RS2"])


class LoadReferenceTests(unittest.TestCase):
    def test_bundled_reference_loads(self) -> None:
        self.assertTrue(REFERENCE_PATH.exists())
        table = load_reference()
        entry = table.lookup("rs1801133")
        self.assertIsNotNone(entry)
        self.assertEqual(entry.gene, "MTHFR")
        self.assertEqual(entry.effect_allele, "A")
        self.assertFalse(table.lookup("RS1979277").has_effect_allele)

    def test_csv_with_alias_columns(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "reference.csv"
            path.write_text(
                "RS ID,Gene,Effect Allele\nrs601338,FUT2,A\n,EMPTY,C\nrs909531,FMO3,C\n",
                encoding="utf-8",
            )
            table = load_reference(path)
        self.assertEqual([entry.rsid for entry in table], ["RS601338", "RS909531"])
        self.assertEqual(table.lookup("RS909531").gene, "FMO3")

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_reference(Path("does-not-exist.csv"))

    def test_missing_rsid_column_raises(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "reference.csv"
            path.write_text("gene,effect_allele\nMTHFR,A\n", encoding="utf-8")
            with self.assertRaises(ValueError):
                load_reference(path)


if __name__ == "__main__":
    unittest.main()
