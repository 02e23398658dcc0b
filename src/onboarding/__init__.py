"""
onboarding — сервис онбординга аккаунтов (ФЛ и организаций).

Создаёт локальные записи Identity Store и согласует их с внешними
сервисами Access-Control (роли) и Billing (планы и подписки).
"""

__version__ = "0.4.0"
