"""FastUoW 를 사용하는 앱의 테스트를 위한 헬퍼 패키지."""
