from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from chessfam.core.database import SessionLocal
from chessfam.services.notification_service import DeferredNotifier, EmailNotifier, OrganizerNotifier
from chessfam.services.registration_service import RegistrationCoordinator
from chessfam.services.series_service import SeriesAggregator
from chessfam.services.subscription_service import SubscriptionStatusProvider
from chessfam.services.tournament_service import TournamentService
from chessfam.services.tournament_store import TournamentStore
from chessfam.services.user_service import UserDirectory
from chessfam.services.withdrawal_service import WithdrawalCoordinator

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_session_factory():
    """Sessions for work that outlives the request, such as background notifications."""
    return SessionLocal

def get_store(db: Session = Depends(get_db)) -> TournamentStore:
    return TournamentStore(db)

def get_user_directory(db: Session = Depends(get_db)) -> UserDirectory:
    return UserDirectory(db)

def get_notifier(
    background_tasks: BackgroundTasks,
    session_factory=Depends(get_session_factory),
) -> DeferredNotifier:
    return DeferredNotifier(background_tasks, OrganizerNotifier(session_factory, EmailNotifier()))

def get_tournament_service(
    store: TournamentStore = Depends(get_store),
    users: UserDirectory = Depends(get_user_directory),
) -> TournamentService:
    return TournamentService(store, users)

def get_registration_coordinator(
    db: Session = Depends(get_db),
    store: TournamentStore = Depends(get_store),
    users: UserDirectory = Depends(get_user_directory),
    notifier=Depends(get_notifier),
) -> RegistrationCoordinator:
    return RegistrationCoordinator(store, users, SubscriptionStatusProvider(db), notifier)

def get_withdrawal_coordinator(
    store: TournamentStore = Depends(get_store),
    users: UserDirectory = Depends(get_user_directory),
    notifier=Depends(get_notifier),
) -> WithdrawalCoordinator:
    return WithdrawalCoordinator(store, users, notifier)

def get_series_aggregator(store: TournamentStore = Depends(get_store)) -> SeriesAggregator:
    return SeriesAggregator(store)
