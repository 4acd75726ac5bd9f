"""레포지토리 패키지 — 데이터베이스 쿼리 계층.

Repository package — Database query layer.
BaseRepository forwards builder calls to its Select statement; the method
registry decides which calls execute and which extend the statement.
"""
