"""
Outbound message templates (pt-BR).
"""

from typing import Iterable

from clinicbot.slots import Slot

NAME_PROMPT = "Ótimo! Vamos agendar sua consulta. 😃\nQual é o seu nome completo?"

PHONE_PROMPT = "Obrigado, {name}! Agora me envie seu telefone com DDD."

SLOTS_HEADER = "Estes são os horários disponíveis:"
SLOTS_FOOTER = "Responda com o número do horário desejado."

INVALID_SLOT = (
    "Não encontrei esse horário. 🤔 Por favor, responda com um dos números da lista."
)

CONFIRM_PROMPT = (
    "Você escolheu: {slot}.\n"
    "Responda 'confirmo' para confirmar ou 'cancelar' para desistir."
)

BOOKING_SUCCESS = "Consulta confirmada para {slot}! ✅ Até breve."

BOOKING_NOTICE = (
    "📅 Novo agendamento\n"
    "Nome: {name}\n"
    "Telefone: {phone}\n"
    "Horário: {slot}"
)

CANCELLED = "Tudo bem, atendimento cancelado. Envie 'agendar' quando quiser recomeçar."

CANCEL_ALERT = "❌ Atendimento cancelado por {who}."

CONNECT_CALENDAR = "Para conectar seu Google Agenda, acesse: {url}"

FALLBACK = (
    "Olá! Sou a secretária virtual 🦷 Posso agendar ou cancelar consultas.\n\n"
    "Dicas:\n"
    "• Envie 'agendar' para começar o atendimento.\n"
    "• Envie 'cancelar' para desistir do atendimento atual."
)


def format_slot_list(slots: Iterable[Slot]) -> str:
    lines = [SLOTS_HEADER]
    lines.extend(f"{slot.id} - {slot.when}" for slot in slots)
    lines.append("")
    lines.append(SLOTS_FOOTER)
    return "\n".join(lines)
