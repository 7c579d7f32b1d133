import pytest

from errors import MalformedModelOutputError
from evaluation import FactChecker
from evaluation.fact_check import build_report, fallback_statements
from evaluation.parsing import parse_fact_check
from models.evaluation import FactCheckResult, StatementSeverity
from conftest import ScriptedLLM, ZORG_DOCUMENT


def result(statement: str, accurate: bool, severity: str = "none", **kwargs) -> FactCheckResult:
    return FactCheckResult(
        statement=statement,
        is_accurate=accurate,
        severity=StatementSeverity(severity),
        **kwargs,
    )


class TestBuildReport:
    def test_no_statements_scores_full_marks(self) -> None:
        report = build_report([])
        assert report.score == 100
        assert report.total_statements == 0

    def test_severity_penalties(self) -> None:
        report = build_report(
            [
                result("Zorg has two moons", True, confidence=0.95),
                result("The sky is blue", False, "critical", discrepancy="The sky is green"),
                result("Zorg is large", False, "minor"),
            ]
        )

        # 1/3 accurate minus 20 for critical and 3 for minor
        assert report.score == 10
        assert report.accurate_statements == 1
        assert report.critical_errors == ['"The sky is blue" -> The sky is green']
        assert report.minor_errors == ['"Zorg is large" -> not supported by the document']
        assert report.moderate_errors == []
        assert report.strengths == ['Verified: "Zorg has two moons"']

    def test_low_confidence_accurate_is_not_a_strength(self) -> None:
        report = build_report([result("Zorg has two moons", True, confidence=0.5)])
        assert report.score == 100
        assert report.strengths == []


def test_fallback_statements() -> None:
    statements = fallback_statements("Hi. Zorg has two moons! Is the sky green on Zorg?")
    assert [s.text for s in statements] == ["Zorg has two moons", "Is the sky green on Zorg"]


class TestFactChecker:
    def test_only_factual_statements_are_checked(self) -> None:
        llm = ScriptedLLM(
            statements=[
                {"text": "Zorg has two moons.", "type": "factual"},
                {"text": "I find Zorg fascinating.", "type": "opinion"},
            ]
        )
        report = FactChecker(llm).check("transcript", [ZORG_DOCUMENT])

        assert report.total_statements == 1
        assert report.score == 100
        assert llm.routes_called().count("fact_check") == 1
        assert "[Chunk 1]" in llm.calls[-1][1]

    def test_statement_extraction_fallback(self) -> None:
        llm = ScriptedLLM(fail_on=("statements",))
        report = FactChecker(llm, max_workers=2).check(
            "Zorg has two moons. The sky is green there.", [ZORG_DOCUMENT]
        )
        assert report.total_statements == 2

    def test_failed_check_assumes_accurate_with_low_confidence(self) -> None:
        checker = FactChecker(ScriptedLLM(fail_on=("fact_check",)))
        checked = checker.check_statement("Zorg has two moons.", ZORG_DOCUMENT)

        assert checked.is_accurate is True
        assert checked.confidence == 0.3


class TestIrregularVerdicts:
    def test_list_evidence_is_flattened(self) -> None:
        llm = ScriptedLLM(
            statements=[{"text": "The sky on Zorg is blue.", "type": "factual"}],
            fact_checks={
                "The sky on Zorg is blue.": {
                    "is_accurate": False,
                    "severity": "critical",
                    "evidence": ["The sky on planet Zorg is green.", "Zorg has two moons."],
                    "discrepancy": 42,
                }
            },
        )
        report = FactChecker(llm).check("The sky on Zorg is blue.", [ZORG_DOCUMENT])

        checked = report.results[0]
        assert checked.is_accurate is False
        assert checked.evidence == "The sky on planet Zorg is green. Zorg has two moons."
        assert checked.discrepancy == "42"
        assert report.critical_errors == ['"The sky on Zorg is blue." -> 42']

    def test_invalid_verdict_shape_is_malformed_output(self) -> None:
        with pytest.raises(MalformedModelOutputError):
            parse_fact_check('{"is_accurate": false}', None)
