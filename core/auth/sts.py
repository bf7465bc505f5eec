# core/auth/sts.py
"""
core/auth/sts.py - 위임 역할(AssumeRole) 기반 계정별 세션 생성

각 이미지 소유 계정에 설정된 역할을 assume하여 15분짜리 최소 권한
자격 증명을 얻습니다. 세션 정책은 이미지 목록 조회와 이미지 속성 조회
두 가지 액션만 허용합니다.

Usage:
    import boto3
    from core.auth.sts import assume_role_session

    sts = boto3.client("sts")
    session = assume_role_session(sts, "111122223333", "ami-query")
    ec2 = session.client("ec2", region_name="us-east-1")
"""

from __future__ import annotations

import json
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from core.config import settings
from core.exceptions import AuthError

logger = logging.getLogger(__name__)

# 세션 정책 - 이미지 조회에 필요한 두 액션만 허용
POLICY: dict[str, Any] = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Action": [
                "ec2:DescribeImageAttribute",
                "ec2:DescribeImages",
            ],
            "Resource": "*",
        }
    ],
}

POLICY_DOCUMENT = json.dumps(POLICY)


def role_arn(account_id: str, role_name: str) -> str:
    """계정 ID와 역할 이름으로 역할 ARN 생성"""
    return f"arn:aws:iam::{account_id}:role/{role_name}"


def assume_role_session(
    sts_client: Any,
    account_id: str,
    role_name: str,
    duration_seconds: int = settings.ROLE_SESSION_DURATION_SECONDS,
    session_name: str = settings.ROLE_SESSION_NAME,
) -> boto3.Session:
    """대상 계정의 역할을 assume하여 boto3 Session 반환

    Args:
        sts_client: STS client (서비스 자체 자격 증명)
        account_id: 대상 계정 ID
        role_name: assume할 역할 이름
        duration_seconds: 자격 증명 유효 시간 (기본 900초)
        session_name: RoleSessionName

    Returns:
        위임 자격 증명이 설정된 boto3.Session

    Raises:
        AuthError: AssumeRole 실패 또는 응답 형식 오류
    """
    arn = role_arn(account_id, role_name)
    try:
        rsp = sts_client.assume_role(
            RoleArn=arn,
            RoleSessionName=session_name,
            Policy=POLICY_DOCUMENT,
            DurationSeconds=duration_seconds,
        )
    except (ClientError, BotoCoreError) as e:
        raise AuthError(account_id, f"AssumeRole 실패 ({arn})", cause=e) from e

    try:
        creds = rsp["Credentials"]
        session = boto3.Session(
            aws_access_key_id=creds["AccessKeyId"],
            aws_secret_access_key=creds["SecretAccessKey"],
            aws_session_token=creds["SessionToken"],
        )
    except KeyError as e:
        raise AuthError(account_id, f"AssumeRole 응답에 자격 증명 없음 ({arn})", cause=e) from e

    logger.debug(f"[{account_id}] 위임 세션 생성 (만료: {creds.get('Expiration', '-')})")
    return session
