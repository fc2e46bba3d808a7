"""Tests for profile markdown rendering and parsing."""

import pytest

from app.modules.markdown.service import (
    MarkdownParseError,
    extract_section,
    generate_markdown,
    generate_next_steps,
    parse_markdown,
)


class TestGenerateMarkdown:
    def test_empty_profile_renders_placeholders(self):
        markdown = generate_markdown({})

        assert markdown.startswith("# Client Profile: [Client Name]")
        assert "- **Industry**: [Enter industry]" in markdown
        assert "- **Annual Revenue**: $[Enter amount]" in markdown
        assert markdown.count("[ ] [Specific action item with owner and date]") == 3

    def test_standard_layout_section_order(self, sample_profile):
        markdown = generate_markdown(sample_profile)

        headings = [
            "## Company Overview",
            "## Agentic AI Framework",
            "## Current Architecture Assessment",
            "## Summary & Next Steps",
        ]
        positions = [markdown.index(heading) for heading in headings]
        assert positions == sorted(positions)
        assert "\n\n---\n\n" in markdown

    def test_agentic_layout_when_problems_present(self):
        markdown = generate_markdown({
            "company_name": "Globex",
            "industry": "Retail",
            "size": "Enterprise",
            "problems": {"business_problems": ["Stockouts"], "agentic_opportunities": ["Replenishment agent"]},
        })

        assert "## Problems & Agentic AI Opportunities" in markdown
        assert "- Stockouts" in markdown
        assert "- **Replenishment agent**" in markdown
        assert "## Agentic AI Framework" not in markdown
        assert "**Company**: Globex (Retail, Enterprise)" in markdown

    def test_hard_costs_are_totalled(self):
        markdown = generate_markdown({
            "agentic_ai_framework": {"hard_costs": {"labor_costs": "100000", "error_costs": "50000"}},
        })

        assert "- Labor costs from manual processes: $100000" in markdown
        assert "- **Total Hard Costs**: $150,000" in markdown

    def test_readiness_score_and_opportunity_priority(self):
        markdown = generate_markdown({
            "current_architecture_assessment": {
                "readiness_scoring": {"data_quality": 2, "integration": 1},
                "opportunities": [
                    {"name": "Invoice matching", "priority_score": 6},
                    {"name": "Demand forecasting", "priority_score": 9, "estimated_impact": 1200000},
                ],
            },
        })

        assert "**Total AI Readiness Score: 3/10**" in markdown
        assert "#### 1. Demand forecasting" in markdown
        assert "#### 2. Invoice matching" in markdown
        assert "- **Estimated Impact**: $1,200,000" in markdown

    def test_explicit_next_steps(self):
        steps = generate_next_steps([{"action": "Schedule workshop", "owner": "Dana", "date": "2024-07-01"}])
        assert steps == "1. [ ] Schedule workshop - Dana - 2024-07-01"


class TestParseMarkdown:
    def test_recovers_company_overview(self, sample_profile):
        parsed = parse_markdown(generate_markdown(sample_profile))

        assert parsed["company_name"] == "Acme Manufacturing"
        overview = parsed["company_overview"]
        assert overview["industry"] == "Manufacturing"
        assert overview["annual_revenue"] == "$250M"
        assert overview["employee_count"] == "1200"
        assert overview["primary_location"] == "Chicago, IL"

    def test_missing_header_is_rejected(self):
        with pytest.raises(MarkdownParseError, match="missing client profile header"):
            parse_markdown("## Company Overview\n- **Industry**: Retail")

    def test_extract_section_stops_at_next_heading(self):
        markdown = "## One\nfirst\n## Two\nsecond"
        assert extract_section(markdown, "## One") == "first"
        assert extract_section(markdown, "## Three") == ""
