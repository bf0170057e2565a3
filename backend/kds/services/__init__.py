from .ticket_service import TicketRouter, TicketStatus

__all__ = ['TicketRouter', 'TicketStatus']
