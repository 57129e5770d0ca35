"""
Learning resource recommendation.

Maps the topics a student should study to reference sites. Each topic is
matched against keyword patterns: specialized sites first, then a
shorter fallback list, then general learning sites.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote

logger = logging.getLogger(__name__)

GENERAL_TOPIC = "General Learning"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ResourceLink:
    title: str
    url: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "url": self.url}


@dataclass
class TopicResources:
    """Links recommended for one study topic."""
    topic: str
    links: List[ResourceLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {"topic": self.topic, "links": [link.to_dict() for link in self.links]}


# ============================================================================
# Site Tables
# ============================================================================

# (pattern, [(title, url)]); "{query}" is replaced by the quoted topic
SPECIALIZED_SITES: List[Tuple[str, List[Tuple[str, str]]]] = [
    (r'math|algebra|calculus|geometry|trigonometry', [
        ("Khan Academy Math",
         "https://www.khanacademy.org/math/search?search_again=1&item_types=all&page_search_query={query}"),
        ("Paul's Online Math Notes", "https://tutorial.math.lamar.edu/"),
        ("Wolfram MathWorld", "https://mathworld.wolfram.com/"),
    ]),
    (r'physics|mechanics|thermodynamics|electricity|magnetism|quantum', [
        ("Physics Classroom", "https://www.physicsclassroom.com/"),
        ("HyperPhysics", "http://hyperphysics.phy-astr.gsu.edu/hbase/index.html"),
        ("MIT OpenCourseWare Physics", "https://ocw.mit.edu/search/?q=physics"),
    ]),
    (r'chemistry|molecule|atom|reaction|element|compound|organic|inorganic', [
        ("Chemistry LibreTexts", "https://chem.libretexts.org/"),
        ("Royal Society of Chemistry", "https://edu.rsc.org/"),
        ("ChemGuide", "https://www.chemguide.co.uk/"),
    ]),
    (r'biology|cell|organism|gene|dna|evolution|ecosystem|protein|enzyme', [
        ("Biology Online", "https://www.biology-online.org/"),
        ("Nature Education", "https://www.nature.com/scitable"),
        ("Khan Academy Biology", "https://www.khanacademy.org/science/biology"),
    ]),
    (r'history|civilization|war|revolution|century', [
        ("History.com", "https://www.history.com/"),
        ("BBC History", "https://www.bbc.co.uk/history"),
        ("Khan Academy World History", "https://www.khanacademy.org/humanities/world-history"),
    ]),
    (r'english|literature|grammar|writing|essay', [
        ("Purdue OWL", "https://owl.purdue.edu/owl/purdue_owl.html"),
        ("LitCharts", "https://www.litcharts.com/"),
        ("English Grammar", "https://www.englishgrammar.org/"),
    ]),
    (r'computer|algorithm|code|program|software', [
        ("W3Schools", "https://www.w3schools.com/"),
        ("GeeksforGeeks", "https://www.geeksforgeeks.org/search/?q={query}"),
        ("MDN Web Docs", "https://developer.mozilla.org/en-US/"),
    ]),
]

FALLBACK_SITES: List[Tuple[str, List[Tuple[str, str]]]] = [
    (r'math|algebra|calculus|geometry|trigonometry', [
        ("Khan Academy Math", "https://www.khanacademy.org/math"),
        ("Math is Fun", "https://www.mathsisfun.com/"),
    ]),
    (r'physics|mechanics|thermodynamics|electricity|magnetism', [
        ("Khan Academy Physics", "https://www.khanacademy.org/science/physics"),
        ("Physics Classroom", "https://www.physicsclassroom.com/"),
    ]),
    (r'chemistry|molecule|atom|reaction|element|compound', [
        ("Khan Academy Chemistry", "https://www.khanacademy.org/science/chemistry"),
        ("Chemistry LibreTexts", "https://chem.libretexts.org/"),
    ]),
    (r'biology|cell|organism|gene|dna|evolution', [
        ("Khan Academy Biology", "https://www.khanacademy.org/science/biology"),
        ("Biology Online", "https://www.biology-online.org/"),
    ]),
    (r'history|civilization|war|revolution|century', [
        ("Khan Academy History", "https://www.khanacademy.org/humanities/world-history"),
        ("History.com", "https://www.history.com/"),
    ]),
    (r'english|literature|grammar|writing|essay', [
        ("Purdue OWL", "https://owl.purdue.edu/owl/purdue_owl.html"),
        ("Grammarly Blog", "https://www.grammarly.com/blog/"),
    ]),
    (r'computer|algorithm|code|program|software', [
        ("W3Schools", "https://www.w3schools.com/"),
        ("GeeksforGeeks", "https://www.geeksforgeeks.org/"),
    ]),
]

GENERAL_SITES = [
    ("Khan Academy", "https://www.khanacademy.org/"),
    ("Coursera", "https://www.coursera.org/"),
]


def _lookup(table, topic: str) -> List[ResourceLink]:
    # Substring match, first row wins
    for pattern, sites in table:
        if re.search(pattern, topic, re.IGNORECASE):
            query = quote(topic, safe="")
            return [ResourceLink(title, url.replace("{query}", query)) for title, url in sites]
    return []


def specialized_resources(topic: str) -> List[ResourceLink]:
    """Subject sites for a topic, or an empty list when no keyword matches."""
    return _lookup(SPECIALIZED_SITES, topic)


def fallback_resources(topic: Optional[str] = None) -> List[ResourceLink]:
    """Short subject list for a topic; general learning sites otherwise."""
    links = _lookup(FALLBACK_SITES, topic or "")
    if not links:
        links = [ResourceLink(title, url) for title, url in GENERAL_SITES]
    return links


def find_learning_resources(
    topics: Optional[Sequence[str]],
    max_topics: int = 3,
    max_links: int = 3
) -> List[TopicResources]:
    """
    Recommend resources for the first few study topics.

    Args:
        topics: Topics to improve, most important first
        max_topics: Number of topics to look up
        max_links: Links kept per topic

    Returns:
        One TopicResources per topic; a single general entry when there
        are no topics
    """
    if not topics:
        return [TopicResources(GENERAL_TOPIC, fallback_resources())]

    resources = []
    for topic in list(topics)[:max_topics]:
        links = specialized_resources(topic) or fallback_resources(topic)
        resources.append(TopicResources(topic, links[:max_links]))
        logger.debug(f"Resources for '{topic}': {len(links)} link(s)")

    return resources
