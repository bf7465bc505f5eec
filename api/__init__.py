"""
api - ami-query HTTP API

Modules:
    - query: 쿼리 문자열 해석, 필터링/정렬, 결과 인코딩
    - server: FastAPI 애플리케이션 팩토리
"""
