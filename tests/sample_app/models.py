from appcore.extensions import db


class Customer(db.Model):
    __tablename__ = "customer"
    __searchable__ = ("name", "email")

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255))
    created_on = db.Column(db.DateTime(timezone=True))
    updated_on = db.Column(db.DateTime(timezone=True))
    created_by = db.Column(db.String(64))
    updated_by = db.Column(db.String(64))


class Invoice(db.Model):
    __tablename__ = "invoice"

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(32), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customer.id"))
