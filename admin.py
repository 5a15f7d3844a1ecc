import streamlit as st
import pandas as pd
from salon_api.db.database import SessionLocal, engine, create_db_and_tables
from salon_api.services import dashboard_service, review_service

# Page Config
st.set_page_config(
    page_title="Kriss Beauty Nails Admin",
    page_icon="💅",
    layout="wide"
)

# Header
st.title("Kriss Beauty Nails - Panel de administración")

create_db_and_tables()


def load_appointments():
    query = """
        SELECT a.date, a.client_name, a.client_phone, a.status, s.name AS service, s.price
        FROM appointments a
        JOIN services s ON s.id = a.service_id
        ORDER BY a.date DESC
    """
    try:
        return pd.read_sql_query(query, engine, parse_dates=["date"])
    except Exception as e:
        st.error(f"Error al leer la base de datos: {e}")
        return None


if st.button("Actualizar datos"):
    st.rerun()

with SessionLocal() as db:
    stats = dashboard_service.get_stats(db)
    pending_reviews = [r for r in review_service.list_all(db) if not r["isApproved"]]

# Metrics
col1, col2, col3, col4 = st.columns(4)
col1.metric("Citas hoy", stats["appointments"]["today"])
col2.metric("Pendientes hoy", stats["appointments"]["pending"])
col3.metric("Ingresos del mes", f"${stats['income']['month']:.2f}")
col4.metric("Reseñas por aprobar", stats["reviews"]["pending"])

if stats["topServices"]:
    st.subheader("Servicios más solicitados")
    st.bar_chart(pd.DataFrame(stats["topServices"]).set_index("name")["count"])

df = load_appointments()

if df is not None and not df.empty:
    st.subheader("Citas")
    status = st.selectbox("Estado", ["Todos", "PENDING", "CONFIRMED", "COMPLETED", "CANCELLED"])
    if status != "Todos":
        df = df[df["status"] == status]
    st.dataframe(
        df,
        use_container_width=True,
        column_config={
            "date": st.column_config.DatetimeColumn("Fecha", format="D.M.YYYY HH:mm"),
            "client_name": "Cliente",
            "client_phone": "Teléfono",
            "status": "Estado",
            "service": "Servicio",
            "price": st.column_config.NumberColumn("Precio", format="$%.2f"),
        }
    )
else:
    st.info("Todavía no hay citas registradas.")

if pending_reviews:
    st.subheader("Reseñas pendientes")
    st.dataframe(pd.DataFrame(pending_reviews)[["clientName", "rating", "comment", "createdAt"]], use_container_width=True)

# Footer
st.markdown("---")
st.caption("Kriss Beauty Nails • Esmeraldas, Ecuador")
