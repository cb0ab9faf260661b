"""
Qualitative narrative for a metrics bundle
"""

from typing import List

from features.models import PortfolioMetrics


def get_qualitative_rating(score: float) -> str:
    """Shared 0-100 → text bands"""
    if score >= 90:
        return 'excellent'
    elif score >= 80:
        return 'very good'
    elif score >= 70:
        return 'good'
    elif score >= 60:
        return 'fair'
    elif score >= 50:
        return 'moderate'
    return 'needs improvement'


class PortfolioAnalyzer:
    """Four fixed paragraphs: health, risk, performance, recommendations"""

    def analyze_portfolio(self, metrics: PortfolioMetrics) -> str:
        analysis = [
            self.get_overall_health_analysis(metrics),
            self.get_risk_analysis(metrics),
            self.get_performance_analysis(metrics),
            self.get_recommendations(metrics),
        ]
        return '\n\n'.join(analysis)

    def get_overall_health_analysis(self, metrics: PortfolioMetrics) -> str:
        if metrics.defai_score >= 80:
            health_level = 'excellent'
        elif metrics.defai_score >= 70:
            health_level = 'good'
        elif metrics.defai_score >= 60:
            health_level = 'fair'
        else:
            health_level = 'needs attention'

        return (
            f"Your portfolio shows {health_level} overall health with a DEFAI score of "
            f"{metrics.defai_score:g}. "
            f"Diversification is {get_qualitative_rating(metrics.diversification)} "
            f"and liquidity is {get_qualitative_rating(metrics.liquidity)}."
        )

    def get_risk_analysis(self, metrics: PortfolioMetrics) -> str:
        if metrics.risk >= 80:
            risk_level = 'high'
        elif metrics.risk >= 60:
            risk_level = 'moderate'
        elif metrics.risk >= 40:
            risk_level = 'balanced'
        else:
            risk_level = 'conservative'

        return (
            f"Your risk profile appears {risk_level}. "
            f"Entry timing is {get_qualitative_rating(metrics.entry_score)} "
            f"and exit execution is {get_qualitative_rating(metrics.exit_score)}. "
            f"Gas optimization is {get_qualitative_rating(metrics.gas_score)}."
        )

    def get_performance_analysis(self, metrics: PortfolioMetrics) -> str:
        vs_cmc = metrics.performance_vs_cmc100
        direction = 'outperforming' if vs_cmc > 0 else 'underperforming'

        return (
            f"Your portfolio is {direction} the CMC100 by {abs(vs_cmc):g}%. "
            f"Alpha generation is {get_qualitative_rating(metrics.alpha_score)} "
            f"and trend following is {get_qualitative_rating(metrics.trend_score)}."
        )

    def get_recommendations(self, metrics: PortfolioMetrics) -> str:
        recommendations: List[str] = []

        if metrics.diversification < 70:
            recommendations.append("Consider diversifying your holdings across more assets")
        if metrics.risk > 80:
            recommendations.append("Consider reducing exposure to high-risk assets")
        if metrics.gas_score < 70:
            recommendations.append(
                "Look for opportunities to optimize transaction timing for better gas efficiency"
            )
        if metrics.yield_score < 70:
            recommendations.append("Explore yield farming opportunities in stable protocols")

        if recommendations:
            return "Recommendations:\n" + '\n'.join(recommendations)

        return (
            "Your portfolio is well-balanced. Continue monitoring market conditions "
            "and maintain your current strategy."
        )
