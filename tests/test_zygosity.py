import unittest

from snp_reference import ReferenceEntry, ReferenceTable
from zygosity import SnpResult, Zygosity, determine_zygosity, extract_rsids, get_snp_results

REFERENCE = [
    {"RS ID": "RS1801394", "Effect Allele": "G", "Gene": "MTRR"},
    {"RS ID": "RS601338", "Effect Allele": "A", "Gene": "FUT2"},
    {"RS ID": "RS1801133", "Effect Allele": "A", "Gene": "MTHFR"},
    {"RS ID": "RS1736557", "Effect Allele": "A", "Gene": "FMO3"},
    {"RS ID": "RS2266782", "Effect Allele": "A", "Gene": "FMO3"},
    {"RS ID": "RS909531", "Effect Allele": "C", "Gene": "FMO3"},
    {"RS ID": "RS2266780", "Effect Allele": "G", "Gene": "FMO3"},
]


class ExtractRsidsTests(unittest.TestCase):
    def test_case_insensitive_deduplicated_in_first_seen_order(self) -> None:
        self.assertEqual(extract_rsids("rs1 talks about RS1 and rs2"), ["RS1", "RS2"])

    def test_no_match_returns_empty_list(self) -> None:
        self.assertEqual(extract_rsids("No variants here, just rsx and RS."), [])
        self.assertEqual(extract_rsids(""), [])

    def test_requires_word_boundaries(self) -> None:
        self.assertEqual(extract_rsids("abcrs123 rs456x (rs789)"), ["RS789"])

    def test_is_idempotent(self) -> None:
        first = extract_rsids("rs10 rs2 RS10 rs3")
        self.assertEqual(extract_rsids(" ".join(first)), first)


class DetermineZygosityTests(unittest.TestCase):
    def test_missing_allele_wins_over_reference(self) -> None:
        for allele1, allele2 in [("-", "A"), ("A", "-"), ("", "G"), ("G", None), ("--", "--"), ("  ", "A")]:
            with self.subTest(allele1=allele1, allele2=allele2):
                self.assertEqual(
                    determine_zygosity(allele1, allele2, "RS1801133", REFERENCE),
                    Zygosity.DATA_MISSING,
                )

    def test_missing_allele_without_reference_entry(self) -> None:
        self.assertEqual(determine_zygosity("-", "-", "RS999", []), Zygosity.DATA_MISSING)
        self.assertEqual(determine_zygosity("A", "", "RS999", None), Zygosity.DATA_MISSING)

    def test_zero_no_call_is_data_missing(self) -> None:
        self.assertEqual(determine_zygosity("0", "0", "RS1801133", REFERENCE), Zygosity.DATA_MISSING)
        self.assertEqual(determine_zygosity("0", "A", "RS1801133", REFERENCE), Zygosity.DATA_MISSING)
        self.assertEqual(determine_zygosity("0", "0", "RS12345", REFERENCE), Zygosity.DATA_MISSING)

    def test_effect_allele_counts(self) -> None:
        self.assertEqual(determine_zygosity("A", "A", "RS1801133", REFERENCE), Zygosity.HOMOZYGOUS)
        self.assertEqual(determine_zygosity("A", "G", "RS1801133", REFERENCE), Zygosity.HETEROZYGOUS)
        self.assertEqual(determine_zygosity("G", "A", "RS1801133", REFERENCE), Zygosity.HETEROZYGOUS)
        self.assertEqual(determine_zygosity("G", "G", "RS1801133", REFERENCE), Zygosity.WILD)
        self.assertEqual(determine_zygosity("C", "T", "RS1801133", REFERENCE), Zygosity.WILD)

    def test_lowercase_alleles_and_rsid(self) -> None:
        self.assertEqual(determine_zygosity("g", "g", "rs1801394", REFERENCE), Zygosity.HOMOZYGOUS)
        self.assertEqual(determine_zygosity("c", "t", "rs909531", REFERENCE), Zygosity.HETEROZYGOUS)

    def test_reference_missing_never_infers_from_equal_alleles(self) -> None:
        self.assertEqual(determine_zygosity("A", "A", "RS12345", REFERENCE), Zygosity.REFERENCE_MISSING)
        self.assertEqual(determine_zygosity("A", "G", "RS12345", REFERENCE), Zygosity.REFERENCE_MISSING)

    def test_blank_effect_allele_is_reference_missing(self) -> None:
        reference = [{"rsid": "RS5", "effect_allele": "  ", "gene": "X"}]
        self.assertEqual(determine_zygosity("T", "T", "RS5", reference), Zygosity.REFERENCE_MISSING)
        table = ReferenceTable([ReferenceEntry("RS6", effect_allele=None)])
        self.assertEqual(determine_zygosity("C", "C", "RS6", table), Zygosity.REFERENCE_MISSING)

    def test_first_matching_reference_entry_wins(self) -> None:
        reference = [
            {"rsid": "rs7", "effect_allele": "T"},
            {"rsid": "RS7", "effect_allele": "C"},
        ]
        self.assertEqual(determine_zygosity("T", "T", "RS7", reference), Zygosity.HOMOZYGOUS)


class GetSnpResultsTests(unittest.TestCase):
    def test_missing_genotype_carries_reference_metadata(self) -> None:
        results = get_snp_results(["RS9"], {}, [{"rsid": "RS9", "effect_allele": "T", "gene": "G1"}])
        self.assertEqual(results["RS9"], SnpResult("RS9", Zygosity.DATA_MISSING, "--", "T", "G1"))

    def test_homozygous_from_reference(self) -> None:
        results = get_snp_results(["RS9"], {"RS9": ("G", "G")}, [{"rsid": "RS9", "effect_allele": "G"}])
        self.assertEqual(results["RS9"].zygosity, Zygosity.HOMOZYGOUS)
        self.assertEqual(results["RS9"].alleles, "GG")

    def test_matching_alleles_without_reference_are_not_homozygous(self) -> None:
        results = get_snp_results(["RS9"], {"RS9": ("A", "A")}, [])
        self.assertEqual(results["RS9"].zygosity, Zygosity.REFERENCE_MISSING)
        self.assertIsNone(results["RS9"].effect_allele)
        self.assertIsNone(results["RS9"].gene)

    def test_alleles_keep_original_case(self) -> None:
        results = get_snp_results(["rs1801133"], {"RS1801133": ("a", "g")}, REFERENCE)
        self.assertEqual(results["RS1801133"].alleles, "ag")
        self.assertEqual(results["RS1801133"].zygosity, Zygosity.HETEROZYGOUS)
        self.assertEqual(results["RS1801133"].gene, "MTHFR")

    def test_sentinel_genotype_is_data_missing(self) -> None:
        results = get_snp_results(["RS601338"], {"RS601338": ("-", "-")}, REFERENCE)
        self.assertEqual(results["RS601338"].zygosity, Zygosity.DATA_MISSING)
        self.assertEqual(results["RS601338"].alleles, "--")
        self.assertEqual(results["RS601338"].effect_allele, "A")

    def test_keys_are_canonical_and_in_first_seen_order(self) -> None:
        data = {"RS2266782": ("A", "G"), "RS909531": ("T", "T")}
        results = get_snp_results(["rs909531", "RS2266782", "RS909531"], data, REFERENCE)
        self.assertEqual(list(results), ["RS909531", "RS2266782"])
        self.assertEqual(results["RS909531"].zygosity, Zygosity.WILD)

    def test_to_dict_uses_state_labels(self) -> None:
        results = get_snp_results(["RS9"], {}, [])
        self.assertEqual(
            results["RS9"].to_dict(),
            {"rsid": "RS9", "zygosity": "Data Missing", "alleles": "--", "effect_allele": None, "gene": None},
        )


if __name__ == "__main__":
    unittest.main()
