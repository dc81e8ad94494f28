"""
Incident classifier for SafePath.

News search results are noisy: policy pieces that merely mention
"security" come back next to genuine attack reports. Each headline is
scored against an ordered table of weighted lexical rules; every matching
rule contributes (no short-circuit) and the sum is compared with a
configurable threshold.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Tuple
from safepath.core.formatting import seen_date_sort_key
from safepath.core.models import ClassifiedArticle, RawArticle

MIN_SCORE = -100
DEFAULT_THRESHOLD = 15


@dataclass(frozen=True)
class Rule:
    """One weighted lexical rule.

    The rule fires when `pattern` matches, `requires` (if any) also matches
    and `unless` (if any) does not.
    """
    pattern: Pattern[str]
    weight: int
    category: str
    requires: Optional[Pattern[str]] = None
    unless: Optional[Pattern[str]] = None

    def matches(self, text: str) -> bool:
        if not self.pattern.search(text):
            return False
        if self.requires is not None and not self.requires.search(text):
            return False
        if self.unless is not None and self.unless.search(text):
            return False
        return True


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def _rule(pattern: str, weight: int, category: str,
          requires: Optional[str] = None, unless: Optional[str] = None) -> Rule:
    return Rule(
        pattern=_rx(pattern),
        weight=weight,
        category=category,
        requires=_rx(requires) if requires else None,
        unless=_rx(unless) if unless else None,
    )


RULES: Tuple[Rule, ...] = (
    # ---- strong positive: fatalities ----
    _rule(r"\b(kill|kills|killed|killing)\b", 35, "fatality"),
    _rule(r"\b(dead|death|deaths|dies|died)\b", 30, "fatality"),
    _rule(r"\b(murder|murdered|slain)\b", 35, "fatality"),
    _rule(r"\bgunned down\b", 35, "fatality"),
    _rule(r"\bshot dead\b", 35, "fatality"),
    _rule(r"\b(beheaded|dismembered|executed)\b", 35, "fatality"),
    _rule(r"\b(lynched|mob justice)\b", 30, "fatality"),
    # ---- strong positive: abduction ----
    _rule(r"\b(kidnap|kidnaps|kidnapped|kidnapping|kidnappers)\b", 35, "abduction"),
    _rule(r"\b(abduct|abducts|abducted|abduction)\b", 35, "abduction"),
    _rule(r"\bhostages?\b", 30, "abduction"),
    _rule(r"\bransom\b", 30, "abduction"),
    _rule(r"\b(rescued|freed|released)\b", 25, "abduction", requires=r"\b(victims?|hostages?|kidnap\w*)\b"),
    # ---- strong positive: robbery ----
    _rule(r"\b(robbery|robbed|robbers|robbing)\b", 30, "robbery"),
    _rule(r"\barmed robbery\b", 35, "robbery"),
    _rule(r"\b(thieves|stolen|theft)\b", 20, "robbery"),
    _rule(r"\bcar snatch", 30, "robbery"),
    _rule(r"\bcarjack", 30, "robbery"),
    _rule(r"\bone chance\b", 30, "robbery"),
    # ---- strong positive: armed actors ----
    _rule(r"\b(gunmen|gunman)\b", 35, "actor"),
    _rule(r"\b(bandits|banditry)\b", 35, "actor"),
    _rule(r"\b(cultists|cultist)\b", 30, "actor"),
    _rule(r"\bcult clash", 35, "actor"),
    _rule(r"\b(insurgents|insurgent|insurgency)\b", 30, "actor"),
    _rule(r"\b(terrorists|terrorist|terrorism)\b", 30, "actor"),
    _rule(r"\b(hoodlums|miscreants)\b", 25, "actor"),
    _rule(r"\barmed (men|gang|gangs)\b", 30, "actor"),
    _rule(r"\bboko haram\b", 35, "actor"),
    _rule(r"\biswap\b", 35, "actor"),
    _rule(r"\bjihadist", 30, "actor"),
    _rule(r"\b(eiye|black axe|buccaneers?|vikings|neo black)\b", 30, "actor"),
    # ---- strong positive: attacks and weapons ----
    _rule(r"\b(attack|attacks|attacked|attacking)\b", 25, "attack"),
    _rule(r"\b(ambush|ambushed)\b", 30, "attack"),
    _rule(r"\b(raid|raids|raided|raiding)\b", 25, "attack"),
    _rule(r"\b(invasion|invaded)\b", 25, "attack"),
    _rule(r"\b(explosion|exploded|explodes)\b", 30, "attack"),
    _rule(r"\b(bomb|bombs|bombing|bombed|bomber)\b", 35, "attack"),
    _rule(r"\b(blast|blasts)\b", 30, "attack"),
    _rule(r"\bieds?\b", 35, "attack"),
    _rule(r"\bsuicide bomb", 35, "attack"),
    _rule(r"\b(shot|shooting|shots fired|gunfire|gunshots?)\b", 30, "attack"),
    _rule(r"\b(stabbed|stabbing|machete|cutlass)\b", 25, "attack"),
    # ---- medium positive: outcomes ----
    _rule(r"\b(injured|injuries|wounded)\b", 20, "outcome"),
    _rule(r"\b(hospitali[sz]ed|hospital)\b", 15, "outcome", requires=r"\b(victims?|attack\w*|shot|stab\w*)\b"),
    _rule(r"\b(arrested|apprehended|nabbed|caught)\b", 15, "outcome"),
    _rule(r"\b(rescued|saved|freed)\b", 15, "outcome"),
    _rule(r"\b(fled|escape|escaped)\b", 10, "outcome"),
    _rule(r"\b(corpse|corpses|body found|bodies)\b", 15, "outcome"),
    # ---- medium positive: herder-farmer conflict ----
    _rule(r"\b(herders|herdsmen)\b", 20, "herder_farmer"),
    _rule(r"\bfulani\b", 25, "herder_farmer", requires=r"\b(attack\w*|clash\w*|kill\w*|herd\w*)\b"),
    _rule(r"\b(farmers|herders)[- ]clash", 30, "herder_farmer"),
    _rule(r"\bcattle rustl", 25, "herder_farmer"),
    # ---- medium positive: communal violence ----
    _rule(r"\bcommunal clash", 25, "communal"),
    _rule(r"\bethnic (clash|violence|crisis)\b", 25, "communal"),
    _rule(r"\btribal (war|clash)", 25, "communal"),
    _rule(r"\breprisal\b", 20, "communal"),
    # ---- medium positive: civil unrest ----
    _rule(r"\b(clash|clashes|clashed)\b", 20, "unrest"),
    _rule(r"\b(riot|riots|rioting)\b", 20, "unrest"),
    _rule(r"\b(protest|protests|protesters)\b", 20, "unrest", requires=r"\b(kill\w*|shot|injur\w*|violen\w*|clash\w*)\b"),
    _rule(r"\b(unrest|crisis)\b", 15, "unrest"),
    _rule(r"\bendsars\b", 20, "unrest"),
    _rule(r"\bpolice brutal", 20, "unrest"),
    _rule(r"\bcurfew\b", 15, "unrest"),
    # ---- medium positive: accidents and disasters ----
    _rule(r"\b(accident|accidents)\b", 20, "accident"),
    _rule(r"\b(crash|crashed|crashes)\b", 20, "accident"),
    _rule(r"\b(collision|collided)\b", 20, "accident"),
    _rule(r"\bfire outbreak\b", 25, "accident"),
    _rule(r"\b(inferno|burnt|gutted|engulfed)\b", 20, "accident"),
    _rule(r"\b(collapse|collapsed)\b", 20, "accident"),
    _rule(r"\btanker (explosion|fire)\b", 25, "accident"),
    _rule(r"\b(flood|floods|flooding)\b", 15, "accident"),
    # ---- medium positive: maritime and oil ----
    _rule(r"\b(pirates|piracy|pirate)\b", 25, "maritime"),
    _rule(r"\bsea pirates\b", 30, "maritime"),
    _rule(r"\bpipeline (vandal|explosion|fire)", 25, "maritime"),
    _rule(r"\billegal refin", 20, "maritime"),
    _rule(r"\bbunker", 20, "maritime", requires=r"\b(oil|crude|explo\w*)\b"),
    # ---- weak positive ----
    _rule(r"\b(police|army|military|soldiers|troops)\b", 5, "weak"),
    _rule(r"\b(victim|victims)\b", 10, "weak"),
    _rule(r"\b(suspect|suspects)\b", 10, "weak"),
    _rule(r"\b(missing|disappeared?)\b", 10, "weak"),
    _rule(r"\b(threat|threats|threatened)\b", 5, "weak"),
    _rule(r"\b(violence|violent)\b", 10, "weak"),
    _rule(r"\b(danger|dangerous)\b", 5, "weak"),
    _rule(r"\b(emergency|rescue)\b", 10, "weak"),
    _rule(r"\b(residents flee|displaced)\b", 10, "weak"),
    # ---- strong negative: governance ----
    _rule(r"\bminister\b", -50, "governance", unless=r"\b(attack\w*|kill\w*|kidnap\w*|shot)\b"),
    _rule(r"\bministry\b", -40, "governance", unless=r"\b(attack\w*|bomb\w*|fire)\b"),
    _rule(r"\b(policy|policies)\b", -50, "governance"),
    _rule(r"\bblueprint\b", -50, "governance"),
    _rule(r"\b(parliament|assembly|senate|lawmakers?)\b", -40, "governance", unless=r"\b(attack\w*|bomb\w*)\b"),
    _rule(r"\b(election|electoral|campaign|vote|ballot|polls?)\b", -45, "governance", unless=r"\b(violen\w*|kill\w*|attack\w*)\b"),
    _rule(r"\b(inaugurates?|inaugurated|swear[- ]?in|sworn in|appointment|appointed|nominated)\b", -50, "governance"),
    _rule(r"\b(budget|appropriation)\b", -40, "governance"),
    # ---- strong negative: opinion and advocacy ----
    _rule(r"\b(hails|commends|praises|lauds|applauds)\b", -50, "opinion"),
    _rule(r"\b(opinion|editorial|commentary)\b", -50, "opinion"),
    _rule(r"\b(urges|urged)\b", -40, "opinion", unless=r"\b(flee|evacuat\w*)\b"),
    _rule(r"\bcalls on\b", -40, "opinion"),
    _rule(r"\badvises\b", -35, "opinion"),
    _rule(r"\bwhat .{1,40} must\b", -50, "opinion"),
    _rule(r"\bhow to (tackle|fight|address|solve|curb|end)\b", -50, "opinion"),
    _rule(r"\bchallenges (before|facing|of)\b", -50, "opinion"),
    _rule(r"\bneed to (address|tackle|fight)\b", -45, "opinion"),
    _rule(r"\bway forward\b", -40, "opinion"),
    _rule(r"\bsolution to\b", -40, "opinion"),
    # ---- strong negative: security praise and programmes ----
    _rule(r"\b(hails|commends|praises) (troops|military|army|police|soldiers)\b", -50, "security_praise"),
    _rule(r"\bwar on terror\b", -40, "security_praise", unless=r"\b(kill\w*|attack\w*|bomb\w*|casualt\w*)\b"),
    _rule(r"\btackling insecurity\b", -40, "security_praise", unless=r"\b(kill\w*|attack\w*)\b"),
    _rule(r"\b(boost|boosts|strengthen|enhance) security\b", -35, "security_praise"),
    # ---- strong negative: sports, entertainment, celebration ----
    _rule(r"\b(football|soccer|super eagles|match|fifa|league|goal|scored)\b", -50, "entertainment"),
    _rule(r"\b(nollywood|movie|film|actor|actress)\b", -50, "entertainment"),
    _rule(r"\b(bbnaija|big brother|concert|music|album|song)\b", -50, "entertainment"),
    _rule(r"\b(wedding|birthday|celebration|festival)\b", -40, "entertainment", unless=r"\b(attack\w*|bomb\w*|kill\w*)\b"),
    # ---- strong negative: economy and markets ----
    _rule(r"\b(naira|dollar|exchange rate|forex)\b", -40, "economic", unless=r"\b(rob\w*|stolen|fraud)\b"),
    _rule(r"\b(stock|stocks|market|trading|shares)\b", -40, "economic"),
    _rule(r"\b(gdp|inflation|economy|economic)\b", -35, "economic", unless=r"\b(crisis|violen\w*)\b"),
    _rule(r"\boil price", -35, "economic"),
    # ---- strong negative: awards and achievements ----
    _rule(r"\b(award|awarded|wins|winner|honour|honoured|honored)\b", -45, "achievement", unless=r"\b(rescue\w*|brav\w*)\b"),
    _rule(r"\b(achievement|achieves|success|successful)\b", -40, "achievement"),
    # ---- strong negative: religious observance ----
    _rule(r"\b(sermon|preach\w*|pastor|imam|church|mosque)\b", -35, "religious", unless=r"\b(attack\w*|bomb\w*|burn\w*|kill\w*)\b"),
    # ---- strong negative: diplomacy ----
    _rule(r"\b(diplomat|diplomats|embassy|ambassador)\b", -30, "diplomatic", unless=r"\b(attack\w*|kidnap\w*|threat\w*)\b"),
    _rule(r"\b(visit|visits|meets|summit|conference)\b", -30, "diplomatic", unless=r"\battack\w*\b"),
)


def matching_rules(headline: Optional[str], rules: Iterable[Rule] = RULES) -> List[Rule]:
    """All rules that fire for a headline, in table order."""
    if not headline or not headline.strip():
        return []
    return [rule for rule in rules if rule.matches(headline)]


def score(headline: Optional[str], rules: Iterable[Rule] = RULES) -> int:
    """
    Incident relevance score of a headline.

    Empty or missing headlines score MIN_SCORE.
    """
    if not headline or not headline.strip():
        return MIN_SCORE
    return sum(rule.weight for rule in matching_rules(headline, rules))


def rank_key(article: ClassifiedArticle) -> Tuple[int, int]:
    """Sort key: score descending, then recency descending."""
    return (-article.incident_score, -seen_date_sort_key(article.seen_date))


class IncidentClassifier:
    """Scores articles and keeps the ones above the acceptance threshold."""

    def __init__(self, threshold: int = DEFAULT_THRESHOLD, rules: Iterable[Rule] = RULES):
        self.threshold = threshold
        self.rules = tuple(rules)

    def score(self, headline: Optional[str]) -> int:
        return score(headline, self.rules)

    def is_accepted(self, headline: Optional[str]) -> bool:
        return self.score(headline) >= self.threshold

    def classify(self, article: RawArticle) -> ClassifiedArticle:
        incident_score = self.score(article.title)
        return ClassifiedArticle(
            **article.model_dump(),
            incident_score=incident_score,
            accepted=incident_score >= self.threshold,
        )

    def filter_incidents(self, articles: Iterable[RawArticle]) -> List[ClassifiedArticle]:
        """
        Classifies articles and returns only accepted ones, best first.

        Args:
            articles: raw search results

        Returns:
            accepted articles sorted by score, then recency
        """
        accepted = [c for c in (self.classify(a) for a in articles) if c.accepted]
        accepted.sort(key=rank_key)
        return accepted
