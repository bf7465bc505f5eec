"""
core/region/data.py - 리전 데이터

캐시 대상이 될 수 있는 AWS 상용 파티션(aws) 리전 목록입니다.
리전이 설정되지 않으면 ALL_REGIONS 전체를 폴링합니다.

Usage:
    from core.region.data import ALL_REGIONS, is_supported_region

    if not is_supported_region("ap-northeast-2"):
        ...
"""

# 전체 AWS 상용 리전 목록 (2026-10-01 기준, 알파벳 순)
ALL_REGIONS: list[str] = [
    "af-south-1",
    "ap-east-1",
    "ap-east-2",
    "ap-northeast-1",
    "ap-northeast-2",
    "ap-northeast-3",
    "ap-south-1",
    "ap-south-2",
    "ap-southeast-1",
    "ap-southeast-2",
    "ap-southeast-3",
    "ap-southeast-4",
    "ap-southeast-5",
    "ap-southeast-7",
    "ca-central-1",
    "ca-west-1",
    "eu-central-1",
    "eu-central-2",
    "eu-north-1",
    "eu-south-1",
    "eu-south-2",
    "eu-west-1",
    "eu-west-2",
    "eu-west-3",
    "il-central-1",
    "me-central-1",
    "me-south-1",
    "mx-central-1",
    "sa-east-1",
    "us-east-1",
    "us-east-2",
    "us-west-1",
    "us-west-2",
]

# 리전 코드 → 표시 이름
REGION_NAMES: dict[str, str] = {
    "af-south-1": "아프리카 (케이프타운)",
    "ap-east-1": "아시아 태평양 (홍콩)",
    "ap-east-2": "아시아 태평양 (타이베이)",
    "ap-northeast-1": "아시아 태평양 (도쿄)",
    "ap-northeast-2": "아시아 태평양 (서울)",
    "ap-northeast-3": "아시아 태평양 (오사카)",
    "ap-south-1": "아시아 태평양 (뭄바이)",
    "ap-south-2": "아시아 태평양 (하이데라바드)",
    "ap-southeast-1": "아시아 태평양 (싱가포르)",
    "ap-southeast-2": "아시아 태평양 (시드니)",
    "ap-southeast-3": "아시아 태평양 (자카르타)",
    "ap-southeast-4": "아시아 태평양 (멜버른)",
    "ap-southeast-5": "아시아 태평양 (말레이시아)",
    "ap-southeast-7": "아시아 태평양 (태국)",
    "ca-central-1": "캐나다 (중부)",
    "ca-west-1": "캐나다 서부 (캘거리)",
    "eu-central-1": "유럽 (프랑크푸르트)",
    "eu-central-2": "유럽 (취리히)",
    "eu-north-1": "유럽 (스톡홀름)",
    "eu-south-1": "유럽 (밀라노)",
    "eu-south-2": "유럽 (스페인)",
    "eu-west-1": "유럽 (아일랜드)",
    "eu-west-2": "유럽 (런던)",
    "eu-west-3": "유럽 (파리)",
    "il-central-1": "이스라엘 (텔아비브)",
    "me-central-1": "중동 (UAE)",
    "me-south-1": "중동 (바레인)",
    "mx-central-1": "멕시코 (중부)",
    "sa-east-1": "남아메리카 (상파울루)",
    "us-east-1": "미국 동부 (버지니아 북부)",
    "us-east-2": "미국 동부 (오하이오)",
    "us-west-1": "미국 서부 (캘리포니아 북부)",
    "us-west-2": "미국 서부 (오레곤)",
}

_REGION_SET = frozenset(ALL_REGIONS)


def is_supported_region(region: str) -> bool:
    """상용 파티션 리전인지 확인"""
    return region in _REGION_SET


def get_region_name(region: str) -> str:
    """리전 표시 이름 반환 (없으면 코드 그대로)"""
    return REGION_NAMES.get(region, region)
