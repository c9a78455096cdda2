"""Human-readable observations about a ranked route set."""

from crossswap.routing.base import ScoredRoute


class InsightGenerator:
    """Builds short observations from scored routes.

    Output depends only on the input list, in its given order.
    """

    def __init__(self, risk_threshold: float = 0.5, spread_threshold: float = 0.1):
        self.risk_threshold = risk_threshold
        self.spread_threshold = spread_threshold

    def _top_route(self, top: ScoredRoute) -> str:
        reasons = []
        if top.proposal.price_impact <= 0.005:
            reasons.append("low price impact")
        if top.execution_time <= 60:
            reasons.append("fast completion")
        if top.risk_score < 0.25:
            reasons.append("few risk factors")
        if top.gas_optimization > 0:
            reasons.append(f"{top.gas_optimization:.0%} less gas than a standard swap")
        why = ", ".join(reasons) if reasons else "the best overall balance of price, time and risk"
        path = " -> ".join(top.proposal.protocols)
        return (
            f"Recommended: {top.provider} via {path} "
            f"(confidence {top.confidence:.0%}) thanks to {why}."
        )

    def get_insights(self, routes: list[ScoredRoute]) -> list[str]:
        """Get insights for routes ranked best first. Empty input gives []."""
        if not routes:
            return []

        top = routes[0]
        insights = [self._top_route(top)]

        for route in routes:
            if route.risk_score > self.risk_threshold:
                notes = "; ".join(route.proposal.risks) or "high price impact"
                insights.append(
                    f"Warning: route {route.id} ({route.provider}) has elevated risk "
                    f"{route.risk_score:.0%}: {notes}."
                )

        if len(routes) > 1:
            worst = min(r.confidence for r in routes)
            spread = top.confidence - worst
            if spread >= self.spread_threshold:
                insights.append(
                    f"Confidence ranges from {worst:.0%} to {top.confidence:.0%} across "
                    f"{len(routes)} routes; the recommended route is clearly ahead."
                )
            else:
                insights.append(
                    f"All {len(routes)} routes score within {spread:.0%} confidence of each other."
                )

            if top.savings_estimate > 0:
                insights.append(
                    f"The recommended route returns {top.savings_estimate:.2%} more than the weakest quote."
                )
            else:
                best_output = max(routes, key=lambda r: r.estimated_output)
                if best_output.id != top.id:
                    insights.append(
                        f"Route {best_output.id} quotes the highest output but ranks lower on time or risk."
                    )

        if top.proposal.price_impact >= 0.01:
            insights.append(
                f"Price impact of {top.proposal.price_impact:.2%} on the top route; "
                "consider splitting the trade."
            )

        return insights
