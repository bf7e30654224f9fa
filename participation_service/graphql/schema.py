# participation_service/graphql/schema.py

import strawberry
from .queries import Query
from .mutations import Mutation
from .subscriptions import Subscription

schema = strawberry.federation.Schema(
    query=Query,
    mutation=Mutation,
    subscription=Subscription,
)
