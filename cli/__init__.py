"""
cli - ami-query 명령줄 인터페이스 (click)
"""
