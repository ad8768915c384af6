"""Adapters layer - where candidate names and byte streams come from."""

from .candidates import CandidateProvider, PathWalker, StaticCandidates
from .sources import MemberReader, SourceResolver, archive_member_name, split_archive_name


__all__ = [
    "CandidateProvider",
    "MemberReader",
    "PathWalker",
    "SourceResolver",
    "StaticCandidates",
    "archive_member_name",
    "split_archive_name",
]
