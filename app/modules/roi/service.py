"""
ROI projections for strategic initiatives.

Projections are heuristic: fixed multiplier tables applied to the coarse
process metrics (complexity, labor intensity, current cost) and investment
context (budget range, readiness, stakeholder buy-in) captured on a profile.
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

HIGH_VALUE_BASE_SAVINGS = 300000
STANDARD_BASE_SAVINGS = 50000
HIGH_VALUE_COSTS = ("high", "very high")

BUDGET_BASE_AMOUNTS = [
    ("under $100K", 75000),
    ("$100K-500K", 300000),
    ("$500K-1M", 750000),
    ("$1M+", 1500000),
]
DEFAULT_BUDGET_AMOUNT = 250000

INDUSTRY_BENCHMARKS: Dict[str, Dict[str, Any]] = {
    "Technology": {
        "typical_roi": 200,
        "avg_payback_months": 10,
        "adoption_rate": 0.75,
        "risk_factors": ["Rapid technology changes", "Integration complexity"],
    },
    "Finance": {
        "typical_roi": 150,
        "avg_payback_months": 14,
        "adoption_rate": 0.65,
        "risk_factors": ["Regulatory compliance", "Security requirements", "Legacy systems"],
    },
    "Healthcare": {
        "typical_roi": 120,
        "avg_payback_months": 16,
        "adoption_rate": 0.55,
        "risk_factors": ["HIPAA compliance", "Clinical validation", "Change resistance"],
    },
    "Manufacturing": {
        "typical_roi": 180,
        "avg_payback_months": 12,
        "adoption_rate": 0.70,
        "risk_factors": ["Production downtime", "Equipment integration", "Worker training"],
    },
    "Retail": {
        "typical_roi": 160,
        "avg_payback_months": 11,
        "adoption_rate": 0.68,
        "risk_factors": ["Seasonal variations", "Customer experience", "Inventory complexity"],
    },
}
DEFAULT_BENCHMARKS = {
    "typical_roi": 140,
    "avg_payback_months": 13,
    "adoption_rate": 0.60,
    "risk_factors": ["Change management", "Technology adoption"],
}


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; projections round .5 up
    return int(math.floor(value + 0.5))


def _digits(value: str) -> int:
    digits = re.sub(r"\D", "", value or "")
    return int(digits) if digits else 0


def _thousands(amount: float) -> str:
    return f"${round_half_up(amount / 1000)}K"


class ROICalculationService:

    @staticmethod
    def get_complexity_multiplier(complexity: Optional[str]) -> float:
        return {"complex": 1.5, "simple": 0.8}.get(complexity, 1.0)

    @staticmethod
    def get_labor_multiplier(labor_intensity: Optional[str]) -> float:
        return {"high": 1.4, "low": 0.7}.get(labor_intensity, 1.0)

    @staticmethod
    def get_cost_multiplier(current_cost: Optional[str]) -> float:
        return {"high": 1.3, "very high": 1.6, "low": 0.8}.get(current_cost, 1.0)

    @classmethod
    def calculate_roi_from_process_metrics(
        cls,
        process_metrics: Optional[Dict[str, Any]],
        investment_context: Optional[Dict[str, Any]],
        industry: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Project savings, investment, ROI and payback for one initiative."""
        metrics = process_metrics or {}
        context = investment_context or {}
        complexity = metrics.get("process_complexity")
        labor = metrics.get("labor_intensity")
        cost = metrics.get("current_cost")

        is_high_value = cost in HIGH_VALUE_COSTS and labor == "high"
        base_savings = HIGH_VALUE_BASE_SAVINGS if is_high_value else STANDARD_BASE_SAVINGS
        adjusted_savings = (
            base_savings
            * cls.get_complexity_multiplier(complexity)
            * cls.get_labor_multiplier(labor)
            * cls.get_cost_multiplier(cost)
        )

        readiness = context.get("implementation_readiness") or "medium"
        buy_in = context.get("stakeholder_buy_in") or "medium"

        investment_cost = cls.calculate_investment_cost(
            context.get("budget_range") or "$100K-500K",
            complexity or "moderate",
            readiness,
        )
        investment_amount = _digits(investment_cost)
        if "K" in investment_cost:
            investment_amount *= 1000

        annual_value = round_half_up(adjusted_savings)
        labor_reallocation = round_half_up(annual_value * 0.4)
        process_cost_savings = round_half_up(annual_value * 0.45)
        risk_avoidance = round_half_up(annual_value * 0.15)

        roi_percentage = round_half_up(annual_value / investment_amount * 100)
        payback_months = round_half_up(investment_amount / (annual_value / 12))

        contingency = {"low": 25, "medium": 15}.get(readiness, 10)
        total_investment = _thousands(investment_amount)

        executive_summary = cls.generate_executive_summary(
            roi_percentage=roi_percentage,
            payback_months=payback_months,
            annual_value=_thousands(annual_value),
            total_investment=total_investment,
            business_objective=f"Automate {complexity or 'moderate'} complexity processes to improve efficiency",
        )

        return {
            "process_cost_savings": f"{_thousands(process_cost_savings)} annual efficiency gains",
            "labor_reallocation": f"{_thousands(labor_reallocation)} FTE capacity redeployment",
            "risk_avoidance": f"{_thousands(risk_avoidance)} compliance risk reduction",
            "total_investment": total_investment,
            "ongoing_costs": f"{_thousands(investment_amount * 0.15)} annual maintenance",
            "annual_value": f"{_thousands(annual_value)} total annual value",
            "roi_percentage": roi_percentage,
            "payback_months": payback_months,
            "key_assumptions": cls._key_assumptions(metrics, context),
            "confidence_level": cls._confidence_level(readiness, buy_in),
            "confidence_factors": cls._confidence_factors(readiness, buy_in),
            "risk_factors": cls._risk_factors(readiness, complexity),
            "contingency_percentage": contingency,
            "executive_summary": executive_summary,
            "recommended_action": (
                "Proceed with Phase 1 pilot" if payback_months <= 12 else "Conduct detailed feasibility study"
            ),
        }

    @staticmethod
    def calculate_investment_cost(
        budget_range: str,
        complexity: Optional[str] = None,
        readiness: Optional[str] = None,
    ) -> str:
        """Investment as "$<amount>" from budget range, complexity and readiness."""
        base_amount = DEFAULT_BUDGET_AMOUNT
        for label, amount in BUDGET_BASE_AMOUNTS:
            if label in (budget_range or ""):
                base_amount = amount
                break

        complexity_multiplier = {"complex": 1.5, "simple": 0.7}.get(complexity, 1.0)
        readiness_multiplier = {"high": 0.9, "low": 1.2}.get(readiness, 1.0)

        return f"${round_half_up(base_amount * complexity_multiplier * readiness_multiplier)}"

    @staticmethod
    def get_industry_benchmarks(industry: Optional[str]) -> Dict[str, Any]:
        return INDUSTRY_BENCHMARKS.get(industry, DEFAULT_BENCHMARKS)

    @staticmethod
    def generate_executive_summary(
        roi_percentage: int,
        payback_months: int,
        annual_value: str,
        total_investment: str,
        business_objective: str,
    ) -> str:
        return (
            f"This AI implementation to {business_objective} will deliver {roi_percentage}% ROI "
            f"with a {payback_months} months payback period. The {total_investment} investment "
            f"will generate {annual_value} in annual value through process automation and "
            f"efficiency gains. Recommendation: Proceed with controlled pilot to validate assumptions."
        )

    @classmethod
    def validate_roi_projection(cls, projection: Dict[str, Any], industry: Optional[str]) -> Dict[str, Any]:
        benchmarks = cls.get_industry_benchmarks(industry)
        warnings = []

        if projection["roi_percentage"] > benchmarks["typical_roi"] * 2:
            warnings.append("ROI percentage exceeds industry benchmarks")
        if projection["payback_months"] < benchmarks["avg_payback_months"] * 0.5:
            warnings.append("Payback period is unrealistically short")

        return {"is_valid": not warnings, "warnings": warnings}

    @classmethod
    def aggregate_initiatives_roi(cls, initiatives: List[Dict[str, Any]], industry: Optional[str]) -> Dict[str, Any]:
        """Portfolio totals across initiatives, each projected independently."""
        breakdown = []
        for initiative in initiatives:
            roi = cls.calculate_roi_from_process_metrics(
                initiative.get("process_metrics"),
                initiative.get("investment_context"),
                industry,
            )
            breakdown.append({
                "initiative": initiative.get("initiative", ""),
                "investment": roi["total_investment"],
                "annual_value": roi["annual_value"],
                "roi": roi["roi_percentage"],
            })

        total_investment = sum(_digits(item["investment"]) * 1000 for item in breakdown)
        total_annual_value = sum(_digits(item["annual_value"]) * 1000 for item in breakdown)
        portfolio_roi = round_half_up(total_annual_value / total_investment * 100) if total_investment else 0

        return {
            "total_investment": _thousands(total_investment),
            "total_annual_value": _thousands(total_annual_value),
            "portfolio_roi": portfolio_roi,
            "initiative_breakdown": breakdown,
        }

    @staticmethod
    def _confidence_level(readiness: str, buy_in: str) -> str:
        if readiness == "high" and buy_in == "high":
            return "High"
        if readiness == "low" or buy_in == "low":
            return "Low"
        return "Medium"

    @staticmethod
    def _risk_factors(readiness: Optional[str], complexity: Optional[str]) -> List[str]:
        risks = []
        if readiness == "low":
            risks.extend(["Low organizational readiness", "Change management challenges"])
        if complexity == "complex":
            risks.extend(["Complex process integration", "Extended implementation timeline"])
        return risks

    @staticmethod
    def _key_assumptions(metrics: Dict[str, Any], context: Dict[str, Any]) -> List[str]:
        assumptions = []
        if metrics.get("current_cycle_time"):
            assumptions.append("40% cycle time improvement achievable")
        if metrics.get("labor_intensity") == "high":
            assumptions.append("2 FTEs can be redeployed to higher-value work")
        if context.get("implementation_readiness") == "high":
            assumptions.append("Zero downtime migration feasible")
        assumptions.append("AI model accuracy will meet 95% threshold")
        return assumptions

    @staticmethod
    def _confidence_factors(readiness: str, buy_in: str) -> List[str]:
        factors = []
        if readiness == "high":
            factors.append("Strong technical foundation")
        if buy_in == "high":
            factors.append("Executive sponsorship secured")
        factors.append("Industry benchmarks support projections")
        factors.append("Similar implementations show success")
        return factors
