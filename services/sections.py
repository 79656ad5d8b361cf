"""Fixed site structure.

A section either has subsections, in which case content lives only in
``key/sub`` buckets, or is a leaf whose content lives under ``key`` itself.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

HOME_LABEL = '홈'


@dataclass(frozen=True)
class LeafSection:
    key: str
    name: str
    description: str

    def bucket_paths(self) -> List[str]:
        return [self.key]

    def to_dict(self) -> dict:
        return {'id': self.key, 'name': self.name, 'description': self.description,
                'href': f'/{self.key}'}


@dataclass(frozen=True)
class ParentSection:
    key: str
    name: str
    description: str
    subsections: Dict[str, str] = field(default_factory=dict)

    def bucket_paths(self) -> List[str]:
        return [f'{self.key}/{sub}' for sub in self.subsections]

    def to_dict(self) -> dict:
        return {
            'id': self.key,
            'name': self.name,
            'description': self.description,
            'href': f'/{self.key}',
            'subsections': [
                {'id': sub, 'name': label, 'path': f'{self.key}/{sub}', 'href': f'/{self.key}/{sub}'}
                for sub, label in self.subsections.items()
            ],
        }


Section = Union[LeafSection, ParentSection]

SECTIONS: Dict[str, Section] = {
    'about-general': ParentSection(
        key='about-general',
        name='절재 김종서 장군',
        description='조선 초기의 명재상이자 무장인 김종서 장군의 생애와 업적을 소개합니다.',
        subsections={
            'life': '생애 및 업적',
            'significance': '역사적 의의',
            'sources': '관련 사료 및 연구',
            'photos': '사진·영상 자료',
        },
    ),
    'organization': ParentSection(
        key='organization',
        name='기념사업회',
        description='김종서장군기념사업회의 설립 목적과 주요 활동을 안내합니다.',
        subsections={
            'overview': '사업회 소개',
            'chairman': '회장 인사말',
            'history': '연혁',
            'projects': '선양사업',
            'announcements': '공지사항',
        },
    ),
    'library': ParentSection(
        key='library',
        name='자료실',
        description='김종서 장군과 관련된 각종 자료와 연구 성과를 제공합니다.',
        subsections={
            'press': '보도자료',
            'academic': '학술 자료·연구 보고서',
            'archive': '사진·영상 아카이브',
        },
    ),
    'contact': LeafSection(
        key='contact',
        name='연락처 & 오시는 길',
        description='기념사업회 위치와 연락처 정보를 안내합니다.',
    ),
}

# Paths served by static pages never hold managed content.
STATIC_PAGE_PATHS = frozenset({
    'about-general/life',
    'about-general/significance',
    'organization/chairman',
    'contact',
})

CONTENT_SECTIONS = tuple(
    path
    for section in SECTIONS.values()
    for path in section.bucket_paths()
    if path not in STATIC_PAGE_PATHS
)


def get_section(key: str) -> Optional[Section]:
    return SECTIONS.get(key)


def all_sections() -> List[Section]:
    return list(SECTIONS.values())


def bucket_paths(key: str) -> List[str]:
    """Document buckets whose items make up ``key`` (a section or a full path)."""
    section = SECTIONS.get(key)
    if section is not None:
        return section.bucket_paths()
    if is_known_path(key):
        return [key]
    return []


def is_known_path(path: str) -> bool:
    if not path:
        return False
    key, _, sub = path.partition('/')
    section = SECTIONS.get(key)
    if section is None:
        return False
    if not sub:
        return True
    return isinstance(section, ParentSection) and sub in section.subsections


def is_content_section(path: str) -> bool:
    return path in CONTENT_SECTIONS


def content_sections() -> List[dict]:
    return [{'path': path, 'label': section_label(path)} for path in CONTENT_SECTIONS]


def section_label(path: str) -> Optional[str]:
    """Display label for ``key`` or ``key/sub``; ``None`` for unknown paths."""
    if not is_known_path(path):
        return None
    key, _, sub = path.partition('/')
    section = SECTIONS[key]
    if sub:
        return f'{section.name} > {section.subsections[sub]}'
    return section.name


def breadcrumbs(path: str, title: Optional[str] = None, content_id: Optional[str] = None) -> List[dict]:
    crumbs = [{'name': HOME_LABEL, 'href': '/'}]
    key, _, sub = (path or '').partition('/')
    section = SECTIONS.get(key)
    if section is not None:
        crumbs.append({'name': section.name, 'href': f'/{key}'})
        if sub and isinstance(section, ParentSection) and sub in section.subsections:
            crumbs.append({'name': section.subsections[sub], 'href': f'/{key}/{sub}'})
    if title:
        crumbs.append({'name': title, 'href': f'/content/{content_id}' if content_id else None})
    return crumbs


def navigation() -> List[dict]:
    return [section.to_dict() for section in all_sections()]
