"""
Grouping of geolocated stories into geographic clusters.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from newsglobe.models import Coordinates, GeolocatedStory, URGENCIES
from newsglobe.utils.geo import calculate_centroid, haversine_distance

logger = logging.getLogger(__name__)


@dataclass
class StoryCluster:
    """
    Stories close to each other, with their centroid and lead story.

    intensity is the cluster size relative to the largest cluster, in (0, 1].
    """
    centroid: Coordinates
    stories: List[GeolocatedStory] = field(default_factory=list)
    intensity: float = 0.0

    @property
    def top_story(self) -> GeolocatedStory:
        """Most urgent story, newest first among equals."""
        return min(
            self.stories,
            key=lambda story: (URGENCIES.index(story.urgency), -story.published_at.timestamp())
        )

    def to_dict(self) -> dict:
        return {
            "centroid": self.centroid.to_dict(),
            "stories": [story.to_dict() for story in self.stories],
            "intensity": self.intensity,
            "topStory": self.top_story.to_dict(),
        }


def cluster_stories(stories: List[GeolocatedStory], radius_km: float = 500.0) -> List[StoryCluster]:
    """
    Greedily cluster stories by distance to cluster centroids.

    Each story, in input order, joins the first cluster whose centroid lies
    within radius_km, otherwise it starts a new cluster.

    Args:
        stories: Geolocated stories
        radius_km: Maximum distance from a story to its cluster centroid

    Returns:
        Clusters, largest first
    """
    clusters: List[StoryCluster] = []

    for story in stories:
        for cluster in clusters:
            distance = haversine_distance(
                cluster.centroid.lat, cluster.centroid.lng,
                story.coords.lat, story.coords.lng
            )
            if distance <= radius_km:
                cluster.stories.append(story)
                cluster.centroid = calculate_centroid(s.coords for s in cluster.stories)
                break
        else:
            clusters.append(StoryCluster(centroid=story.coords, stories=[story]))

    if not clusters:
        return []

    largest = max(len(cluster.stories) for cluster in clusters)
    for cluster in clusters:
        cluster.intensity = len(cluster.stories) / largest

    clusters.sort(key=lambda cluster: len(cluster.stories), reverse=True)
    logger.info(f"Grouped {len(stories)} stories into {len(clusters)} clusters")
    return clusters
